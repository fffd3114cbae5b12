"""
Minor-unit corrections between ISO 4217 and the processor.

For most currencies the processor uses the ISO number of decimals and no
conversion is needed. The currencies below deviate (see the processor's
currency-code table), so amounts are re-scaled by ``10 ** delta`` on the way
out and back.

The two tables are kept as separate literals, mirroring the processor's
documentation. They must stay exact inverses of each other; the test suite
checks this.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

ISO_TO_PROCESSOR: dict[str, int] = {
    "CLP": -2,
    "CVE": 2,
    "IDR": 2,
    "ISK": -2,
}

PROCESSOR_TO_ISO: dict[str, int] = {
    "CLP": 2,
    "CVE": -2,
    "IDR": -2,
    "ISK": 2,
}


def convert_with_mapping(mapping: Mapping[str, int], amount: int, currency_code: str) -> int:
    """
    Re-scale ``amount`` by the mapping's delta for ``currency_code``.

    Unlisted currencies are returned unchanged. Scaling down rounds half
    away from zero.
    """
    delta = mapping.get(currency_code.upper())
    if not delta:
        return amount
    scaled = Decimal(amount).scaleb(delta)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_processor_minor_units(amount: int, currency_code: str) -> int:
    return convert_with_mapping(ISO_TO_PROCESSOR, amount, currency_code)


def to_iso_minor_units(amount: int, currency_code: str) -> int:
    return convert_with_mapping(PROCESSOR_TO_ISO, amount, currency_code)
