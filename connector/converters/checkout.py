"""
Shopper-facing checkout requests: payments, sessions and payment methods.

Fields the shopper's client sends that the connector does not own (the
``paymentMethod`` blob, browser info, ...) are forwarded untouched; the
connector then sets everything it is authoritative for on top.
"""

import uuid
from typing import Any, Optional, Sequence

from connector.config import STORED_PAYMENT_METHOD_TYPES, Settings
from connector.converters.helpers import (
    build_return_url,
    convert_payment_method_from_processor_format,
    convert_payment_method_to_processor_format,
    get_one_shipping_address,
    get_shopper_statement,
    populate_application_info,
    populate_cart_address,
    to_processor_amount,
)
from connector.engine.errors import RequiredFieldError
from connector.mapping.currencies import to_iso_minor_units
from connector.mapping.line_items import map_cart_items
from connector.models.commerce import Cart, Money, Payment
from connector.models.wire import (
    Amount,
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    CreatePaymentData,
    CreateSessionData,
    PaymentMethodsRequest,
    PaymentRequest,
)

LINE_ITEM_METHODS = {"klarna", "klarna_paynow", "klarna_account", "paypal"}
AFTERPAY_METHODS = {"clearpay", "afterpaytouch"}


def _country_code(cart: Cart) -> Optional[str]:
    if cart.billing_address is not None and cart.billing_address.country:
        return cart.billing_address.country
    return cart.country


def _common_fields(config: Settings, cart: Cart, payment: Payment) -> dict[str, Any]:
    return {
        "amount": to_processor_amount(payment.amount_planned),
        "reference": payment.id,
        "merchantAccount": config.adyen_merchant_account,
        "countryCode": _country_code(cart),
        "shopperEmail": cart.customer_email,
        "returnUrl": build_return_url(config, payment.id),
        "billingAddress": populate_cart_address(cart.billing_address),
        "deliveryAddress": populate_cart_address(get_one_shipping_address(cart)),
    }


class CreatePaymentConverter:
    def __init__(self, config: Settings):
        self._config = config

    def convert_request(self, data: CreatePaymentData, cart: Cart, payment: Payment) -> PaymentRequest:
        request_data = data.model_dump(
            by_alias=True, exclude_none=True, exclude={"payment_reference", "store_payment_method"}
        )

        return PaymentRequest.model_validate(
            {
                **request_data,
                **_common_fields(self._config, cart, payment),
                **self._populate_additional_payment_method_data(data, cart),
                **self.populate_stored_payment_methods_data(data, cart),
                "applicationInfo": populate_application_info(),
                "shopperStatement": get_shopper_statement(self._config),
            }
        )

    def _populate_additional_payment_method_data(self, data: CreatePaymentData, cart: Cart) -> dict[str, Any]:
        method_type = data.payment_method.get("type")

        if method_type == "scheme":
            return {"authenticationData": {"threeDSRequestData": {"nativeThreeDS": "preferred"}}}
        if method_type in LINE_ITEM_METHODS:
            return {"lineItems": map_cart_items(cart)}
        if method_type in AFTERPAY_METHODS:
            return self._populate_afterpay_data(cart)
        if method_type == "klarna_b2b":
            return self._populate_klarna_b2b_data(cart)
        return {}

    def populate_stored_payment_methods_data(self, data: CreatePaymentData, cart: Cart) -> dict[str, Any]:
        """
        Recurring fields for paying with a stored token, or for storing the card for the first time.

        Only for tokenizable method types, and only when the shopper opted in
        (``storePaymentMethod``) or picked a stored token (``storedPaymentMethodId``).
        Whether the token belongs to the cart's customer is checked by the caller.
        """
        method_type = data.payment_method.get("type")
        if not self._config.adyen_stored_payment_methods_enabled or method_type not in STORED_PAYMENT_METHOD_TYPES:
            return {}

        pays_with_stored_token = bool(data.payment_method.get("storedPaymentMethodId"))
        tokenizes = bool(data.store_payment_method) and not pays_with_stored_token
        if not pays_with_stored_token and not tokenizes:
            return {}

        if not cart.customer_id:
            raise RequiredFieldError("customerId", "Stored payment methods require a cart with a customer")

        fields: dict[str, Any] = {
            "recurringProcessingModel": "CardOnFile",
            "shopperInteraction": "ContAuth" if pays_with_stored_token else "Ecommerce",
            "shopperReference": cart.customer_id,
        }
        if tokenizes:
            fields["storePaymentMethod"] = True
        return fields

    def _populate_afterpay_data(self, cart: Cart) -> dict[str, Any]:
        billing, shipping = cart.billing_address, cart.shipping_address

        def first(field: str) -> Optional[str]:
            for address in (billing, shipping):
                value = getattr(address, field, None) if address is not None else None
                if value:
                    return value
            return None

        return {
            "shopperReference": cart.customer_id or cart.anonymous_id or str(uuid.uuid4()),
            "shopperName": {"firstName": first("first_name") or "", "lastName": first("last_name") or ""},
            "telephoneNumber": first("phone"),
            "lineItems": map_cart_items(cart),
        }

    def _populate_klarna_b2b_data(self, cart: Cart) -> dict[str, Any]:
        billing = cart.billing_address
        return {
            "shopperName": {
                "firstName": (billing.first_name if billing else None) or "",
                "lastName": (billing.last_name if billing else None) or "",
            },
            "company": {"name": (billing.company if billing else None) or ""},
            "lineItems": map_cart_items(cart),
        }


class CreateSessionConverter:
    def __init__(self, config: Settings):
        self._config = config

    def convert_request(
        self,
        data: CreateSessionData,
        cart: Cart,
        payment: Payment,
        allowed_payment_methods: Sequence[str] = (),
    ) -> CreateCheckoutSessionRequest:
        allowed = [convert_payment_method_to_processor_format(m) for m in allowed_payment_methods]

        return CreateCheckoutSessionRequest.model_validate(
            {
                **data.model_dump(by_alias=True, exclude_none=True),
                **_common_fields(self._config, cart, payment),
                "channel": data.channel or "Web",
                "allowedPaymentMethods": allowed or None,
                "lineItems": map_cart_items(cart),
                "applicationInfo": populate_application_info(),
                "shopperStatement": get_shopper_statement(self._config),
            }
        )

    def convert_response(self, response: CreateCheckoutSessionResponse) -> CreateCheckoutSessionResponse:
        amount = Amount(
            value=to_iso_minor_units(response.amount.value, response.amount.currency),
            currency=response.amount.currency,
        )
        return response.model_copy(update={"amount": amount})


class PaymentMethodsConverter:
    def __init__(self, config: Settings):
        self._config = config

    def convert_request(self, data: dict[str, Any], cart: Cart, amount: Money) -> PaymentMethodsRequest:
        return PaymentMethodsRequest.model_validate(
            {
                **data,
                "amount": to_processor_amount(amount),
                "countryCode": cart.country,
                "merchantAccount": self._config.adyen_merchant_account,
            }
        )

    def convert_response(
        self, response: dict[str, Any], allowed_payment_methods: Sequence[str] = ()
    ) -> dict[str, Any]:
        """Drop methods the merchant did not allow. No allow-list keeps everything."""
        if not allowed_payment_methods:
            return response

        allowed = set(allowed_payment_methods)
        filtered = dict(response)
        for key in ("paymentMethods", "storedPaymentMethods"):
            if filtered.get(key):
                filtered[key] = [
                    pm for pm in filtered[key]
                    if pm.get("type") and convert_payment_method_from_processor_format(pm["type"]) in allowed
                ]
        return filtered
