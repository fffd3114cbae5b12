"""
Shopper checkout flows: sessions, payments, payment details and methods.

The cart is the source of truth for the amount. A payment is created from
the cart's payment amount and attached to the cart before the processor is
called; the processor's answer is recorded as an Authorization transaction.
"""

import logging
from typing import Any, Optional, Sequence

from connector.config import Settings
from connector.converters.checkout import (
    CreatePaymentConverter,
    CreateSessionConverter,
    PaymentMethodsConverter,
)
from connector.converters.helpers import build_merchant_return_url
from connector.engine.errors import (
    InvalidOperationError,
    ProcessorApiError,
    RequiredFieldError,
    ResourceNotFoundError,
)
from connector.models.commerce import Cart, Payment, PaymentDraft, PaymentMethodInfo, TransactionDraft
from connector.models.enums import ResultCode, TransactionState, TransactionType
from connector.models.wire import (
    ConfirmPaymentData,
    CreatePaymentData,
    CreateSessionData,
    PaymentResponse,
)
from connector.providers.base import CartService, PaymentMethodService, PaymentService, ProcessorApi
from connector.providers.checkout_client import wrap_processor_error

logger = logging.getLogger("connector.checkout")

PAYMENT_INTERFACE = "adyen"

_FAILED_RESULT_CODES = {ResultCode.REFUSED.value, ResultCode.ERROR.value, ResultCode.CANCELLED.value}
_PENDING_RESULT_CODES = {ResultCode.PENDING.value, ResultCode.RECEIVED.value}


def convert_result_code(result_code: Optional[str], is_action_required: bool) -> TransactionState:
    """
    Authorization state for a payments/details result code.

    Pending and Received only count as pending when the shopper has nothing
    left to do; with an action outstanding the payment stays Initial.
    """
    if result_code == ResultCode.AUTHORISED.value:
        return TransactionState.SUCCESS
    if result_code in _PENDING_RESULT_CODES and not is_action_required:
        return TransactionState.PENDING
    if result_code in _FAILED_RESULT_CODES:
        return TransactionState.FAILURE
    return TransactionState.INITIAL


def is_action_required(response: PaymentResponse) -> bool:
    return bool(response.action and response.action.get("type"))


class CheckoutService:
    def __init__(
        self,
        config: Settings,
        payment_service: PaymentService,
        cart_service: CartService,
        processor: ProcessorApi,
        allowed_payment_methods: Sequence[str] = (),
        payment_method_service: Optional[PaymentMethodService] = None,
    ):
        self._config = config
        self._payment_service = payment_service
        self._cart_service = cart_service
        self._processor = processor
        self._allowed_payment_methods = list(allowed_payment_methods)
        self._payment_method_service = payment_method_service
        self._payment_converter = CreatePaymentConverter(config)
        self._session_converter = CreateSessionConverter(config)
        self._methods_converter = PaymentMethodsConverter(config)

    async def _call(self, operation, *args):
        try:
            return await operation(*args)
        except ProcessorApiError:
            raise
        except Exception as e:
            raise wrap_processor_error(e) from e

    async def _create_payment_for_cart(self, cart: Cart, method: Optional[str] = None) -> tuple[Payment, Cart]:
        payment = await self._payment_service.create_payment(
            PaymentDraft(
                amount_planned=self._cart_service.get_payment_amount(cart),
                payment_method_info=PaymentMethodInfo(payment_interface=PAYMENT_INTERFACE, method=method),
                customer_id=cart.customer_id,
                anonymous_id=None if cart.customer_id else cart.anonymous_id,
            )
        )
        cart = await self._cart_service.add_payment(cart.id, payment.id)
        return payment, cart

    def _has_payment_amount_changed(self, cart: Cart, payment: Payment) -> bool:
        amount = self._cart_service.get_payment_amount(cart)
        return (
            payment.amount_planned.cent_amount != amount.cent_amount
            or payment.amount_planned.currency_code != amount.currency_code
        )

    async def _check_stored_token_owner(self, data: CreatePaymentData, cart: Cart) -> None:
        """A stored token can only pay for a cart of the customer it was stored for."""
        token = data.payment_method.get("storedPaymentMethodId")
        if not token or not self._config.adyen_stored_payment_methods_enabled:
            return
        if not cart.customer_id:
            raise RequiredFieldError("customerId", "Stored payment methods require a cart with a customer")
        belongs = self._payment_method_service is not None and await self._payment_method_service.does_token_belong_to_customer(
            cart.customer_id,
            self._config.adyen_stored_payment_methods_payment_interface,
            self._config.adyen_stored_payment_methods_interface_account or None,
            token,
        )
        if not belongs:
            logger.warning("Stored payment method does not belong to customer %s of cart %s", cart.customer_id, cart.id)
            raise ResourceNotFoundError("payment-method", token)

    async def get_payment_methods(self, cart_id: str, data: dict[str, Any]) -> dict[str, Any]:
        cart = await self._cart_service.get_cart(cart_id)
        request = self._methods_converter.convert_request(data, cart, self._cart_service.get_payment_amount(cart))
        response = await self._call(self._processor.payment_methods, request)
        return self._methods_converter.convert_response(response, self._allowed_payment_methods)

    async def create_session(self, cart_id: str, data: CreateSessionData) -> dict[str, Any]:
        cart = await self._cart_service.get_cart(cart_id)
        payment, cart = await self._create_payment_for_cart(cart)

        request = self._session_converter.convert_request(data, cart, payment, self._allowed_payment_methods)
        response = await self._call(self._processor.sessions, request)

        logger.info("Checkout session %s created for payment %s", response.id, payment.id)
        return {
            "sessionData": self._session_converter.convert_response(response).to_wire(),
            "paymentReference": payment.id,
        }

    async def create_payment(self, cart_id: str, data: CreatePaymentData) -> dict[str, Any]:
        cart = await self._cart_service.get_cart(cart_id)
        method = data.payment_method.get("type")
        await self._check_stored_token_owner(data, cart)

        if data.payment_reference:
            payment = await self._payment_service.update_payment(data.payment_reference, payment_method=method)
            if self._has_payment_amount_changed(cart, payment):
                raise InvalidOperationError(
                    "The payment amount does not fulfill the remaining amount of the cart",
                    details={"cartId": cart.id, "paymentId": payment.id},
                )
        else:
            payment, cart = await self._create_payment_for_cart(cart, method)

        request = self._payment_converter.convert_request(data, cart, payment)
        response = await self._call(self._processor.payments, request)
        state = convert_result_code(response.result_code, is_action_required(response))

        updated = await self._payment_service.update_payment(
            payment.id,
            psp_reference=response.psp_reference,
            transaction=TransactionDraft(
                type=TransactionType.AUTHORIZATION,
                state=state,
                amount=payment.amount_planned,
                interaction_id=response.psp_reference,
            ),
        )

        logger.info(
            "Payment authorization processed: payment=%s interaction=%s result=%s",
            updated.id,
            response.psp_reference,
            response.result_code,
        )

        result = {**response.to_wire(), "paymentReference": updated.id}
        if state in (TransactionState.SUCCESS, TransactionState.PENDING):
            result["merchantReturnUrl"] = build_merchant_return_url(self._config, updated.id, response.result_code)
        return result

    async def confirm_payment(self, data: ConfirmPaymentData) -> dict[str, Any]:
        payment = await self._payment_service.get_payment(data.payment_reference)

        details = data.model_dump(by_alias=True, exclude_none=True, exclude={"payment_reference"})
        response = await self._call(self._processor.payments_details, details)
        state = convert_result_code(response.result_code, False)

        updated = await self._payment_service.update_payment(
            payment.id,
            psp_reference=response.psp_reference,
            transaction=TransactionDraft(
                type=TransactionType.AUTHORIZATION,
                state=state,
                amount=payment.amount_planned,
                interaction_id=response.psp_reference,
            ),
        )

        logger.info(
            "Payment confirmation processed: payment=%s interaction=%s result=%s",
            updated.id,
            response.psp_reference,
            response.result_code,
        )

        return {
            **response.to_wire(),
            "paymentReference": updated.id,
            "merchantReturnUrl": build_merchant_return_url(self._config, updated.id, response.result_code),
        }
