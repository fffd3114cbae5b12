"""
Commerce platform models: payments, their transaction ledger, carts and orders.

Field names are snake_case in Python and camelCase on the wire, so carts and
orders exported from the commerce platform validate directly.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from connector.models.enums import TransactionState, TransactionType


class CommerceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Money(CommerceModel):
    """An amount in ISO 4217 minor units."""

    cent_amount: int
    currency_code: str
    fraction_digits: Optional[int] = None


# ─── Payment ledger ───────────────────────────────────────────────────


class Transaction(CommerceModel):
    id: str
    type: TransactionType
    state: TransactionState
    amount: Money
    interaction_id: Optional[str] = None


class TransactionDraft(CommerceModel):
    """
    A ledger change to merge into a payment.

    ``id`` targets one existing transaction. Without it, ``interaction_id``
    together with ``type`` identifies the transaction to update, and a new
    entry is appended when nothing matches.
    """

    type: TransactionType
    state: TransactionState
    amount: Money
    interaction_id: Optional[str] = None
    id: Optional[str] = None


class CardDetails(CommerceModel):
    """Displayable details of the card a payment was made with."""

    brand: Optional[str] = None
    last_four: Optional[str] = None
    expiry_month: Optional[int] = None
    expiry_year: Optional[int] = None


class PaymentMethodInfo(CommerceModel):
    payment_interface: Optional[str] = None
    method: Optional[str] = None
    card_details: Optional[CardDetails] = None


class Payment(CommerceModel):
    id: str
    version: int = 1
    amount_planned: Money
    interface_id: Optional[str] = None
    payment_method_info: PaymentMethodInfo = Field(default_factory=PaymentMethodInfo)
    transactions: list[Transaction] = Field(default_factory=list)

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((tx for tx in self.transactions if tx.id == transaction_id), None)


class PaymentDraft(CommerceModel):
    amount_planned: Money
    payment_method_info: PaymentMethodInfo = Field(default_factory=PaymentMethodInfo)
    customer_id: Optional[str] = None
    anonymous_id: Optional[str] = None


# ─── Cart / order ─────────────────────────────────────────────────────


class TaxedItemPrice(CommerceModel):
    total_net: Money
    total_gross: Money
    total_tax: Optional[Money] = None


class TaxRate(CommerceModel):
    name: Optional[str] = None
    amount: Optional[float] = None  # decimal rate, e.g. 0.19
    included_in_price: bool = False
    country: Optional[str] = None


class Price(CommerceModel):
    value: Money


class ProductVariant(CommerceModel):
    id: Optional[int] = None
    sku: Optional[str] = None


class LineItem(CommerceModel):
    id: str
    name: dict[str, str]
    variant: ProductVariant = Field(default_factory=ProductVariant)
    price: Price
    quantity: int
    total_price: Money
    taxed_price: Optional[TaxedItemPrice] = None
    tax_rate: Optional[TaxRate] = None


class CustomLineItem(CommerceModel):
    id: str
    name: dict[str, str]
    money: Money
    quantity: int
    total_price: Money
    taxed_price: Optional[TaxedItemPrice] = None
    tax_rate: Optional[TaxRate] = None


class ShippingInfo(CommerceModel):
    shipping_method_name: str
    price: Money
    taxed_price: Optional[TaxedItemPrice] = None
    tax_rate: Optional[TaxRate] = None


class Address(CommerceModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    street_name: Optional[str] = None
    street_number: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    state: Optional[str] = None
    country: str = ""
    company: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class Shipping(CommerceModel):
    """One shipping method of a cart in ``Multiple`` shipping mode."""

    shipping_key: str
    shipping_info: ShippingInfo
    shipping_address: Optional[Address] = None


class NormalizedShipping(CommerceModel):
    shipping_info: ShippingInfo
    shipping_address: Optional[Address] = None


class DiscountOnTotalPrice(CommerceModel):
    discounted_amount: Money
    discounted_net_amount: Optional[Money] = None
    discounted_gross_amount: Optional[Money] = None


class TaxedPrice(CommerceModel):
    total_net: Money
    total_gross: Money
    total_tax: Optional[Money] = None


class Cart(CommerceModel):
    id: str
    version: int = 1
    customer_id: Optional[str] = None
    anonymous_id: Optional[str] = None
    customer_email: Optional[str] = None
    country: Optional[str] = None
    locale: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)
    custom_line_items: list[CustomLineItem] = Field(default_factory=list)
    total_price: Money
    taxed_price: Optional[TaxedPrice] = None
    shipping_mode: str = "Single"
    shipping_info: Optional[ShippingInfo] = None
    shipping: list[Shipping] = Field(default_factory=list)
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    discount_on_total_price: Optional[DiscountOnTotalPrice] = None


class Order(Cart):
    order_number: Optional[str] = None
    cart_id: Optional[str] = None


# ─── Stored payment methods ───────────────────────────────────────────


class CustomerPaymentMethodDraft(CommerceModel):
    customer_id: str
    payment_interface: str
    interface_account: Optional[str] = None
    method: Optional[str] = None
    token: str
    is_default: bool = False


class CustomerPaymentMethod(CustomerPaymentMethodDraft):
    """A customer's tokenized payment method; ``token`` is the processor's stored payment method id."""

    id: str
    created_at: Optional[datetime] = None
