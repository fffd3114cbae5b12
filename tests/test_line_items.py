"""Tests for the cart → processor line-item mapper."""

import pytest

from connector.mapping.line_items import (
    convert_tax_percentage,
    get_item_amount,
    localized_name,
    map_cart_items,
    map_discount_on_total_price,
    map_line_item,
    map_shipping,
    normalize_shipping,
)
from connector.models.commerce import Cart, DiscountOnTotalPrice, LineItem, Money, Order, TaxRate


def _money(cents, currency="EUR"):
    return {"centAmount": cents, "currencyCode": currency}


class TestHelpers:
    def test_item_amount_divides_evenly(self):
        assert get_item_amount(1800, 2) == 900

    def test_item_amount_rounds_half_up(self):
        assert get_item_amount(1513, 2) == 757
        assert get_item_amount(1000, 3) == 333
        assert get_item_amount(-5, 2) == -3

    def test_tax_percentage_in_basis_points(self):
        assert convert_tax_percentage(TaxRate(amount=0.19)) == 1900
        assert convert_tax_percentage(TaxRate(amount=0.055)) == 550

    def test_missing_tax_rate_is_zero(self):
        assert convert_tax_percentage(None) == 0
        assert convert_tax_percentage(TaxRate(name="exempt")) == 0

    def test_localized_name_prefers_locale(self):
        name = {"en-GB": "Hiking boots", "de-DE": "Wanderschuhe"}
        assert localized_name(name, "de-DE") == "Wanderschuhe"
        assert localized_name(name, "fr-FR") == "Hiking boots"
        assert localized_name(name) == "Hiking boots"


class TestCartItems:
    def test_full_breakdown_in_order(self, cart):
        records = [r.to_wire() for r in map_cart_items(cart)]

        assert records == [
            {
                "id": "BOOT-42",
                "description": "Hiking boots",
                "quantity": 2,
                "amountExcludingTax": 757,
                "amountIncludingTax": 900,
                "taxAmount": 144,
                "taxPercentage": 1900,
            },
            {
                "id": "BOOT-42-discount",
                "description": "Hiking boots discount",
                "quantity": 2,
                "amountIncludingTax": -200,
            },
            {
                "id": "cli-001",
                "description": "Gift wrap",
                "quantity": 1,
                "amountExcludingTax": 500,
                "amountIncludingTax": 500,
                "taxAmount": 0,
                "taxPercentage": 0,
            },
            {
                "description": "Shipping - DHL",
                "quantity": 1,
                "amountExcludingTax": 416,
                "amountIncludingTax": 495,
                "taxAmount": 79,
                "taxPercentage": 1900,
            },
        ]

    def test_undiscounted_item_has_no_discount_record(self, cart):
        item = cart.line_items[0].model_copy(update={"total_price": Money(cent_amount=2000, currency_code="EUR")})
        assert [r.id for r in map_line_item(item)] == ["BOOT-42"]

    def test_line_item_without_sku_uses_its_id(self, cart):
        item = cart.line_items[0]
        item = item.model_copy(update={"variant": item.variant.model_copy(update={"sku": None})})
        assert [r.id for r in map_line_item(item)] == ["li-001", "li-001-discount"]

    def test_order_maps_like_cart(self, cart):
        order = Order.model_validate({**cart.model_dump(by_alias=True), "id": "order-001", "cartId": cart.id})
        assert map_cart_items(order) == map_cart_items(cart)

    def test_amounts_are_in_processor_minor_units(self):
        cart = Cart.model_validate({
            "id": "cart-isk",
            "lineItems": [
                {
                    "id": "li-isk",
                    "name": {"is-IS": "Lopapeysa"},
                    "variant": {"sku": "LOPI-M"},
                    "price": {"value": _money(1000000, "ISK")},
                    "quantity": 1,
                    "totalPrice": _money(900000, "ISK"),
                }
            ],
            "totalPrice": _money(900000, "ISK"),
        })

        main, discount = map_cart_items(cart)
        assert main.amount_including_tax == 9000
        assert main.amount_excluding_tax == 9000
        assert main.tax_amount == 0
        assert main.tax_percentage == 0
        assert discount.amount_including_tax == -1000


class TestShipping:
    def test_multiple_shipping_methods(self):
        cart = Cart.model_validate({
            "id": "cart-multi",
            "totalPrice": _money(1390),
            "shippingMode": "Multiple",
            "shipping": [
                {
                    "shippingKey": "home",
                    "shippingInfo": {"shippingMethodName": "PostNL", "price": _money(695)},
                    "shippingAddress": {"country": "NL", "city": "Utrecht"},
                },
                {
                    "shippingKey": "office",
                    "shippingInfo": {"shippingMethodName": "DHL Express", "price": _money(695)},
                },
            ],
        })

        records = map_shipping(normalize_shipping(cart))

        assert [r.description for r in records] == ["Shipping - PostNL", "Shipping - DHL Express"]
        for record in records:
            assert record.quantity == 1
            assert record.amount_excluding_tax == 0
            assert record.amount_including_tax == 0
            assert record.tax_amount == 0

    def test_no_shipping(self, cart):
        cart = cart.model_copy(update={"shipping_info": None})
        assert normalize_shipping(cart) == []


class TestDiscountOnTotalPrice:
    def test_negative_amounts(self):
        discount = DiscountOnTotalPrice.model_validate({
            "discountedAmount": _money(1000),
            "discountedNetAmount": _money(840),
            "discountedGrossAmount": _money(1000),
        })

        record = map_discount_on_total_price(discount)

        assert record.description == "Discount"
        assert record.quantity == 1
        assert record.amount_excluding_tax == -840
        assert record.amount_including_tax == -1000
        assert record.tax_amount == -160

    def test_appended_last(self, cart):
        cart = cart.model_copy(update={
            "discount_on_total_price": DiscountOnTotalPrice.model_validate({
                "discountedAmount": _money(100),
                "discountedNetAmount": _money(84),
                "discountedGrossAmount": _money(100),
            })
        })

        records = map_cart_items(cart)

        assert len(records) == 5
        assert records[-1].description == "Discount"


class TestTotals:
    def test_line_items_add_up_to_cart_total(self, cart):
        boots = cart.line_items[0]
        boots = boots.model_copy(update={
            "quantity": 3,
            "price": boots.price.model_copy(update={"value": Money(cent_amount=600, currency_code="EUR")}),
        })
        cart = cart.model_copy(update={
            "line_items": [boots],
            "discount_on_total_price": DiscountOnTotalPrice.model_validate({
                "discountedAmount": _money(300),
                "discountedNetAmount": _money(252),
                "discountedGrossAmount": _money(300),
            }),
            "taxed_price": cart.taxed_price.model_copy(update={"total_gross": Money(cent_amount=2495, currency_code="EUR")}),
        })

        records = map_cart_items(cart)

        assert not [r for r in records if r.id and r.id.endswith("-discount")]
        assert sum(r.amount_including_tax * r.quantity for r in records) == cart.taxed_price.total_gross.cent_amount


@pytest.mark.parametrize("quantity,total,expected_unit", [(1, 999, 999), (3, 1000, 333), (4, 1002, 251)])
def test_per_unit_amount(quantity, total, expected_unit):
    item = LineItem.model_validate({
        "id": "li",
        "name": {"en": "Socks"},
        "variant": {"sku": "SOCK"},
        "price": {"value": _money(get_item_amount(total, quantity))},
        "quantity": quantity,
        "totalPrice": _money(total),
    })
    assert map_line_item(item)[0].amount_including_tax == expected_unit
