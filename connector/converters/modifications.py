"""
Capture, cancel, refund and reversal requests.

Every modification request carries the merchant account and a ``reference``:
the caller's merchant reference, or the payment id when none is given.
"""

import logging
from typing import Optional, Union

from connector.config import Settings
from connector.converters.helpers import to_processor_amount
from connector.engine.errors import (
    ConnectorError,
    InvalidOperationError,
    ReferencedResourceNotFoundError,
)
from connector.mapping.line_items import map_cart_items
from connector.models.commerce import Cart, Money, Order, Payment
from connector.models.enums import TransactionType
from connector.models.wire import (
    PaymentCancelRequest,
    PaymentCaptureRequest,
    PaymentRefundRequest,
    PaymentReversalRequest,
)
from connector.providers.base import CartService, OrderService

logger = logging.getLogger("connector.converters")


class CapturePaymentConverter:
    """
    Builds capture requests.

    Methods in ``capture_line_item_methods`` settle against the basket, so
    their captures carry the full line items of the order (or, before the
    order exists, the cart).
    """

    def __init__(self, config: Settings, cart_service: CartService, order_service: OrderService):
        self._config = config
        self._cart_service = cart_service
        self._order_service = order_service

    async def convert_request(
        self,
        payment: Payment,
        amount: Money,
        merchant_reference: Optional[str] = None,
    ) -> PaymentCaptureRequest:
        request = PaymentCaptureRequest(
            merchant_account=self._config.adyen_merchant_account,
            reference=merchant_reference or payment.id,
            amount=to_processor_amount(amount),
        )

        if payment.payment_method_info.method in self._config.capture_line_item_methods:
            basket = await self._get_order_or_cart(payment)
            request.line_items = map_cart_items(basket, self._cart_service.get_normalized_shipping(basket))

        return request

    async def _get_order_or_cart(self, payment: Payment) -> Union[Order, Cart]:
        try:
            return await self._order_service.get_order_by_payment_id(payment.id)
        except ConnectorError as e:
            logger.info("No order for payment %s (%s), falling back to the cart", payment.id, e.message)

        try:
            return await self._cart_service.get_cart_by_payment_id(payment.id)
        except ConnectorError as e:
            logger.error("No cart for payment %s either: %s", payment.id, e.message)
            raise ReferencedResourceNotFoundError("cart", payment.id) from e


class CancelPaymentConverter:
    def __init__(self, config: Settings):
        self._config = config

    def convert_request(self, payment: Payment, merchant_reference: Optional[str] = None) -> PaymentCancelRequest:
        return PaymentCancelRequest(
            merchant_account=self._config.adyen_merchant_account,
            reference=merchant_reference or payment.id,
        )


class RefundPaymentConverter:
    def __init__(self, config: Settings):
        self._config = config

    def convert_request(
        self,
        payment: Payment,
        amount: Money,
        merchant_reference: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> PaymentRefundRequest:
        """
        Raises:
            ReferencedResourceNotFoundError: ``transaction_id`` is not on the payment.
            InvalidOperationError: ``transaction_id`` is not a charge.
        """
        request = PaymentRefundRequest(
            merchant_account=self._config.adyen_merchant_account,
            reference=merchant_reference or payment.id,
            amount=to_processor_amount(amount),
        )

        if transaction_id:
            transaction = payment.find_transaction(transaction_id)
            if transaction is None:
                raise ReferencedResourceNotFoundError("transaction", transaction_id)
            if transaction.type != TransactionType.CHARGE:
                raise InvalidOperationError(
                    f"Transaction {transaction_id} is of type {transaction.type.value}, only charges can be refunded",
                    details={"transactionId": transaction_id, "transactionType": transaction.type.value},
                )
            request.capture_psp_reference = transaction.interaction_id

        return request


class ReversePaymentConverter:
    def __init__(self, config: Settings):
        self._config = config

    def convert_request(self, payment: Payment, merchant_reference: Optional[str] = None) -> PaymentReversalRequest:
        return PaymentReversalRequest(
            merchant_account=self._config.adyen_merchant_account,
            reference=merchant_reference or payment.id,
        )
