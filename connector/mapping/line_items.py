"""
Cart/order → processor line items.

Deferred-payment methods (Klarna, Afterpay, ...) need the full economic
breakdown of the basket: one record per line item and custom line item, an
extra negative record for per-item discounts, one record per shipping method,
and one record for a discount on the total price.

Amounts are converted to the processor's minor units before they are placed
in a record. Per-unit amounts are the item total divided by the quantity,
rounded half up (away from zero) to a whole minor unit. With odd quantities
the per-unit figures times the quantity may therefore differ from the item
total by at most ``quantity / 2`` minor units.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from connector.mapping.currencies import to_processor_minor_units
from connector.models.commerce import (
    Cart,
    CustomLineItem,
    DiscountOnTotalPrice,
    LineItem,
    Money,
    NormalizedShipping,
    Order,
    TaxRate,
)
from connector.models.wire import ProcessorLineItem


def get_item_amount(total_amount: int, quantity: int) -> int:
    """Per-unit share of ``total_amount``, rounded half up."""
    return int((Decimal(total_amount) / Decimal(quantity)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def convert_tax_percentage(tax_rate: Optional[TaxRate]) -> int:
    """Decimal tax rate → basis points (0.19 → 1900). Missing rate → 0."""
    if tax_rate is None or tax_rate.amount is None:
        return 0
    return int((Decimal(str(tax_rate.amount)) * 10000).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def localized_name(name: dict[str, str], locale: Optional[str] = None) -> str:
    if locale and locale in name:
        return name[locale]
    return next(iter(name.values()), "")


def _processor_amount(money: Money) -> int:
    return to_processor_minor_units(money.cent_amount, money.currency_code)


def _item_amounts(item: Union[LineItem, CustomLineItem]) -> tuple[int, int, int]:
    """(excluding tax, including tax, tax) for the whole item, processor units."""
    if item.taxed_price is None:
        total = _processor_amount(item.total_price)
        return total, total, 0

    tax = _processor_amount(item.taxed_price.total_tax) if item.taxed_price.total_tax else 0
    return (
        _processor_amount(item.taxed_price.total_net),
        _processor_amount(item.taxed_price.total_gross),
        tax,
    )


def _map_item(
    item: Union[LineItem, CustomLineItem],
    item_id: str,
    unit_price: Money,
    locale: Optional[str],
) -> list[ProcessorLineItem]:
    description = localized_name(item.name, locale)
    excluding_tax, including_tax, tax = _item_amounts(item)

    records = [
        ProcessorLineItem(
            id=item_id,
            description=description,
            quantity=item.quantity,
            amount_excluding_tax=get_item_amount(excluding_tax, item.quantity),
            amount_including_tax=get_item_amount(including_tax, item.quantity),
            tax_amount=get_item_amount(tax, item.quantity),
            tax_percentage=convert_tax_percentage(item.tax_rate),
        )
    ]

    discounted_amount = unit_price.cent_amount * item.quantity - item.total_price.cent_amount
    if discounted_amount > 0:
        records.append(
            ProcessorLineItem(
                id=f"{item_id}-discount",
                description=f"{description} discount",
                quantity=item.quantity,
                amount_including_tax=-to_processor_minor_units(
                    discounted_amount, item.total_price.currency_code
                ),
            )
        )

    return records


def map_line_item(line_item: LineItem, locale: Optional[str] = None) -> list[ProcessorLineItem]:
    item_id = line_item.variant.sku or line_item.id
    return _map_item(line_item, item_id, line_item.price.value, locale)


def map_custom_line_item(custom_line_item: CustomLineItem, locale: Optional[str] = None) -> list[ProcessorLineItem]:
    return _map_item(custom_line_item, custom_line_item.id, custom_line_item.money, locale)


def map_shipping(normalized_shippings: list[NormalizedShipping]) -> list[ProcessorLineItem]:
    """One record per shipping method; untaxed shipping carries zero amounts."""
    records = []
    for shipping in normalized_shippings:
        info = shipping.shipping_info
        excluding_tax = including_tax = tax = 0

        if info.taxed_price is not None:
            excluding_tax = _processor_amount(info.taxed_price.total_net)
            including_tax = _processor_amount(info.taxed_price.total_gross)
            if info.taxed_price.total_tax is not None:
                tax = _processor_amount(info.taxed_price.total_tax)

        records.append(
            ProcessorLineItem(
                description=f"Shipping - {info.shipping_method_name}",
                quantity=1,
                amount_excluding_tax=excluding_tax,
                amount_including_tax=including_tax,
                tax_amount=tax,
                tax_percentage=convert_tax_percentage(info.tax_rate),
            )
        )
    return records


def map_discount_on_total_price(discount: DiscountOnTotalPrice) -> ProcessorLineItem:
    excluding_tax = _processor_amount(discount.discounted_net_amount) if discount.discounted_net_amount else 0
    including_tax = _processor_amount(discount.discounted_gross_amount) if discount.discounted_gross_amount else 0

    return ProcessorLineItem(
        description="Discount",
        quantity=1,
        amount_excluding_tax=-excluding_tax,
        amount_including_tax=-including_tax,
        tax_amount=-(including_tax - excluding_tax),
    )


def normalize_shipping(cart: Cart) -> list[NormalizedShipping]:
    """Single and multiple shipping modes flattened into one list."""
    if cart.shipping_mode == "Multiple":
        return [
            NormalizedShipping(shipping_info=s.shipping_info, shipping_address=s.shipping_address)
            for s in cart.shipping
        ]
    if cart.shipping_info is not None:
        return [NormalizedShipping(shipping_info=cart.shipping_info, shipping_address=cart.shipping_address)]
    return []


def map_cart_items(
    cart: Union[Cart, Order],
    normalized_shippings: Optional[list[NormalizedShipping]] = None,
) -> list[ProcessorLineItem]:
    """
    Flatten a cart (or order, which shares the same shape) into processor
    line items, in order: line items, custom line items, shipping, discount.

    ``normalized_shippings`` comes from the cart service when the caller has
    one; otherwise the shipping is normalized here.
    """
    records: list[ProcessorLineItem] = []

    for line_item in cart.line_items:
        records.extend(map_line_item(line_item, cart.locale))

    for custom_line_item in cart.custom_line_items:
        records.extend(map_custom_line_item(custom_line_item, cart.locale))

    if normalized_shippings is None:
        normalized_shippings = normalize_shipping(cart)
    records.extend(map_shipping(normalized_shippings))

    if cart.discount_on_total_price is not None:
        records.append(map_discount_on_total_price(cart.discount_on_total_price))

    return records
