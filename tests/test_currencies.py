"""Tests for the ISO 4217 ↔ processor minor-unit tables."""

import pytest

from connector.mapping.currencies import (
    ISO_TO_PROCESSOR,
    PROCESSOR_TO_ISO,
    convert_with_mapping,
    to_iso_minor_units,
    to_processor_minor_units,
)


class TestTables:
    def test_same_currencies_in_both_directions(self):
        assert set(ISO_TO_PROCESSOR) == set(PROCESSOR_TO_ISO)

    @pytest.mark.parametrize("currency", sorted(ISO_TO_PROCESSOR))
    def test_deltas_are_inverse(self, currency):
        assert ISO_TO_PROCESSOR[currency] == -PROCESSOR_TO_ISO[currency]


class TestConversion:
    def test_unlisted_currency_is_identity(self):
        assert to_processor_minor_units(1234, "EUR") == 1234
        assert to_iso_minor_units(1234, "EUR") == 1234

    def test_scale_up(self):
        # CVE: ISO has 0 decimals, processor expects 2
        assert to_processor_minor_units(150, "CVE") == 15000

    def test_scale_down(self):
        assert to_processor_minor_units(10000, "ISK") == 100
        assert to_iso_minor_units(100, "ISK") == 10000

    def test_lowercase_currency_code(self):
        assert to_processor_minor_units(5, "idr") == 500

    def test_scale_down_rounds_half_up(self):
        assert convert_with_mapping({"CLP": -2}, 150, "CLP") == 2
        assert convert_with_mapping({"CLP": -2}, 149, "CLP") == 1
        assert convert_with_mapping({"CLP": -2}, -150, "CLP") == -2

    @pytest.mark.parametrize("currency", ["CVE", "IDR"])
    @pytest.mark.parametrize("amount", [0, 1, 99, 123456789])
    def test_round_trip_for_scale_up_currencies(self, currency, amount):
        assert to_iso_minor_units(to_processor_minor_units(amount, currency), currency) == amount

    @pytest.mark.parametrize("currency", ["CLP", "ISK"])
    def test_round_trip_for_scale_down_currencies(self, currency):
        # Exact whenever the ISO amount is a whole number of processor units
        for amount in (0, 100, 2990000):
            assert to_iso_minor_units(to_processor_minor_units(amount, currency), currency) == amount
