"""Small conversions shared by the outbound converters."""

import re
from typing import Any, Optional
from urllib.parse import urlencode

from connector.config import Settings
from connector.mapping.currencies import to_iso_minor_units, to_processor_minor_units
from connector.models.commerce import Address, Cart, Money
from connector.models.enums import ResultCode
from connector.models.wire import Amount, ProcessorAddress

# Commerce method name → processor method type. Anything unlisted is passed through.
PAYMENT_METHODS_TO_PROCESSOR: dict[str, str] = {
    "card": "scheme",
    "klarna_pay_later": "klarna",
    "klarna_pay_now": "klarna_paynow",
    "klarna_pay_overtime": "klarna_account",
    "bancontactcard": "bcmc",
    "bancontactmobile": "bcmc_mobile",
    "klarna_billie": "klarna_b2b",
    "przelewy24": "onlineBanking_PL",
    "afterpay": "afterpaytouch",
}

PAYMENT_METHODS_FROM_PROCESSOR: dict[str, str] = {v: k for k, v in PAYMENT_METHODS_TO_PROCESSOR.items()}

# Processor brands of card (scheme) payments.
SCHEME_CARD_BRANDS = frozenset({
    "amex", "argencard", "bcmc", "bijcard", "cabal", "cartebancaire", "codensa", "cup", "dankort",
    "diners", "discover", "electron", "elo", "forbrugsforeningen", "hiper", "hipercard", "jcb",
    "karenmillen", "laser", "maestro", "maestrouk", "mc", "mcalphabankbonus", "mir", "naranja",
    "oasis", "rupay", "shopping", "solo", "troy", "uatp", "visa", "visaalphabankbonus",
    "visadankort", "warehouse",
})

# Processor card brand → commerce display key. Anything unlisted is passed through.
CARD_BRANDS_FROM_PROCESSOR: dict[str, str] = {
    "mc": "mastercard",
    "amex": "amex",
    "visa": "visa",
    "cup": "unionpay",
    "diners": "diners",
    "discover": "discover",
    "jcb": "jcb",
    "maestro": "maestro",
    "bcmc": "bancontact",
    "cartebancaire": "cartes_bancaires",
}

# Characters the processor accepts in a shopper statement.
_SHOPPER_STATEMENT_REJECTED = re.compile(r"[^a-zA-Z0-9 .,'_\-?+*/]")


def convert_payment_method_to_processor_format(payment_method: str) -> str:
    return PAYMENT_METHODS_TO_PROCESSOR.get(payment_method, payment_method)


def convert_payment_method_from_processor_format(payment_method: str) -> str:
    return PAYMENT_METHODS_FROM_PROCESSOR.get(payment_method, payment_method)


def is_scheme_card_brand(brand: Optional[str]) -> bool:
    return brand in SCHEME_CARD_BRANDS


def convert_card_brand_from_processor_format(brand: Optional[str]) -> Optional[str]:
    if not brand:
        return None
    return CARD_BRANDS_FROM_PROCESSOR.get(brand, brand)


def parse_expiry_date(expiry_date: Optional[str]) -> tuple[Optional[int], Optional[int]]:
    """(month, year) from the processor's ``"6/2016"`` format; (None, None) if unparseable."""
    if not expiry_date:
        return None, None
    month, _, year = expiry_date.partition("/")
    try:
        return int(month), int(year)
    except ValueError:
        return None, None


def to_processor_amount(money: Money) -> Amount:
    return Amount(
        value=to_processor_minor_units(money.cent_amount, money.currency_code),
        currency=money.currency_code,
    )


def to_iso_money(amount: Amount) -> Money:
    return Money(
        cent_amount=to_iso_minor_units(amount.value, amount.currency),
        currency_code=amount.currency,
    )


def populate_cart_address(address: Optional[Address]) -> Optional[ProcessorAddress]:
    if address is None:
        return None
    return ProcessorAddress(
        country=address.country or "",
        city=address.city or "",
        street=address.street_name or "",
        house_number_or_name=address.street_number or "",
        postal_code=address.postal_code or "",
        state_or_province=address.region or address.state or None,
    )


def get_one_shipping_address(cart: Cart) -> Optional[Address]:
    """The cart's shipping address, or the first one in multi-shipping mode."""
    if cart.shipping_address is not None:
        return cart.shipping_address
    for shipping in cart.shipping:
        if shipping.shipping_address is not None:
            return shipping.shipping_address
    return None


def build_return_url(config: Settings, payment_reference: str) -> str:
    query = urlencode({"paymentReference": payment_reference})
    return f"{config.processor_url.rstrip('/')}/payments/details?{query}"


def build_merchant_return_url(config: Settings, payment_reference: str, result_code: Optional[str] = None) -> str:
    params = {"paymentReference": payment_reference}
    if result_code == ResultCode.CANCELLED.value:
        params["userAction"] = "cancelled"
    separator = "&" if "?" in config.merchant_return_url else "?"
    return f"{config.merchant_return_url}{separator}{urlencode(params)}"


def populate_application_info() -> dict[str, Any]:
    return {
        "externalPlatform": {"name": "commerce-connector", "integrator": "commerce"},
        "merchantApplication": {"name": "adyen-commerce-connector"},
    }


def get_shopper_statement(config: Settings) -> Optional[str]:
    """
    The configured shopper statement with disallowed characters removed.

    Returns None when nothing is configured or nothing survives filtering.
    """
    statement = config.adyen_shopper_statement.strip()
    if not statement:
        return None
    return _SHOPPER_STATEMENT_REJECTED.sub("", statement) or None
