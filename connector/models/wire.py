"""
Processor (Adyen Checkout API) request and response payloads.

Amounts here are in the processor's minor-unit convention, which differs from
ISO 4217 for a handful of currencies (see ``connector.mapping.currencies``).
Models allow extra fields so shopper-supplied data such as ``paymentMethod``
passes through untouched.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Amount(WireModel):
    value: int
    currency: str


class ProcessorLineItem(WireModel):
    id: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[int] = None
    amount_excluding_tax: Optional[int] = None
    amount_including_tax: Optional[int] = None
    tax_amount: Optional[int] = None
    tax_percentage: Optional[int] = None  # basis points


class ProcessorAddress(WireModel):
    country: str = ""
    city: str = ""
    street: str = ""
    house_number_or_name: str = ""
    postal_code: str = ""
    state_or_province: Optional[str] = None


# ─── Modifications ────────────────────────────────────────────────────


class PaymentCaptureRequest(WireModel):
    merchant_account: str
    reference: str
    amount: Amount
    line_items: Optional[list[ProcessorLineItem]] = None


class PaymentCancelRequest(WireModel):
    merchant_account: str
    reference: str


class PaymentRefundRequest(WireModel):
    merchant_account: str
    reference: str
    amount: Amount
    capture_psp_reference: Optional[str] = None


class PaymentReversalRequest(WireModel):
    merchant_account: str
    reference: str


class ModificationResponse(WireModel):
    psp_reference: str
    status: str = "received"
    payment_psp_reference: Optional[str] = None
    reference: Optional[str] = None


# ─── Payments and sessions ────────────────────────────────────────────


class PaymentRequest(WireModel):
    amount: Amount
    reference: str
    merchant_account: str
    country_code: Optional[str] = None
    shopper_email: Optional[str] = None
    return_url: str
    billing_address: Optional[ProcessorAddress] = None
    delivery_address: Optional[ProcessorAddress] = None
    line_items: Optional[list[ProcessorLineItem]] = None
    application_info: Optional[dict[str, Any]] = None
    shopper_statement: Optional[str] = None


class PaymentResponse(WireModel):
    psp_reference: Optional[str] = None
    result_code: Optional[str] = None
    merchant_reference: Optional[str] = None
    action: Optional[dict[str, Any]] = None


class ProcessorStoredPaymentMethod(WireModel):
    id: str
    type: Optional[str] = None
    brand: Optional[str] = None
    last_four: Optional[str] = None
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None
    holder_name: Optional[str] = None


class StoredPaymentMethodsResponse(WireModel):
    merchant_account: Optional[str] = None
    shopper_reference: Optional[str] = None
    stored_payment_methods: list[ProcessorStoredPaymentMethod] = Field(default_factory=list)


class PaymentMethodsRequest(WireModel):
    merchant_account: str
    country_code: Optional[str] = None
    amount: Optional[Amount] = None


class CreateCheckoutSessionRequest(WireModel):
    amount: Amount
    reference: str
    merchant_account: str
    country_code: Optional[str] = None
    return_url: str
    channel: str = "Web"
    shopper_email: Optional[str] = None
    allowed_payment_methods: Optional[list[str]] = None
    line_items: Optional[list[ProcessorLineItem]] = None
    billing_address: Optional[ProcessorAddress] = None
    delivery_address: Optional[ProcessorAddress] = None
    application_info: Optional[dict[str, Any]] = None
    shopper_statement: Optional[str] = None


class CreateCheckoutSessionResponse(WireModel):
    id: str
    session_data: Optional[str] = None
    amount: Amount
    reference: Optional[str] = None
    merchant_account: Optional[str] = None
    return_url: Optional[str] = None
    expires_at: Optional[str] = None


# ─── Shopper-facing request bodies ────────────────────────────────────


class CreatePaymentData(WireModel):
    """Body of ``POST /payments``; everything beyond these fields is forwarded."""

    payment_method: dict[str, Any] = Field(default_factory=dict)
    payment_reference: Optional[str] = None
    store_payment_method: Optional[bool] = None


class CreateSessionData(WireModel):
    channel: Optional[str] = None


class ConfirmPaymentData(WireModel):
    payment_reference: str
    details: dict[str, Any] = Field(default_factory=dict)


# ─── Webhooks ─────────────────────────────────────────────────────────


class NotificationRequestItem(WireModel):
    event_code: str
    success: bool
    amount: Amount
    psp_reference: str
    merchant_reference: str
    original_reference: Optional[str] = None
    payment_method: Optional[str] = None
    merchant_account_code: Optional[str] = None
    event_date: Optional[str] = None
    additional_data: dict[str, Any] = Field(default_factory=dict)


class NotificationItem(WireModel):
    notification_request_item: NotificationRequestItem = Field(alias="NotificationRequestItem")


class Notification(WireModel):
    live: bool = False
    notification_items: list[NotificationItem] = Field(min_length=1)

    @property
    def item(self) -> NotificationRequestItem:
        """The single item this connector processes per delivery."""
        return self.notification_items[0].notification_request_item


class TokenizationData(WireModel):
    merchant_account: str
    shopper_reference: str
    stored_payment_method_id: Optional[str] = None
    type: Optional[str] = None  # payment method variant, e.g. "visastandardcredit"
    operation: Optional[str] = None


class TokenizationNotification(WireModel):
    """A recurring token life cycle webhook."""

    type: str
    data: TokenizationData
    created_at: Optional[str] = None
    environment: Optional[str] = None
    event_id: Optional[str] = None
    version: Optional[str] = None
