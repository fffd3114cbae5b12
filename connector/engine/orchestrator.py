"""
Payment modification orchestrator.

Runs capture, cancel, refund and reversal requests against the processor.
The flow for each modification:

  1. Load the payment and resolve the action to a transaction type
  2. Ledger validation (can this payment be captured/cancelled/refunded?)
  3. Build the processor request (line items, capture psp reference, ...)
  4. Record an Initial transaction for the attempt
  5. Call the processor
  6. Move the same transaction to Pending / Success / Failure, or fold it
     into the transaction a webhook already recorded for the response

Validation and lookup errors stop the flow before step 4, so the processor
is never called with a request known to be invalid and the ledger never
shows an attempt that was not made. A processor failure is recorded as a
Failure transaction and then re-raised.

Modifications are not deduplicated: submitting the same request twice
records two attempts. Webhook-driven updates are the idempotent path.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from connector.config import Settings
from connector.converters.modifications import (
    CancelPaymentConverter,
    CapturePaymentConverter,
    RefundPaymentConverter,
    ReversePaymentConverter,
)
from connector.engine.errors import (
    ConnectorError,
    InvalidJsonInputError,
    InvalidOperationError,
    VersionConflictError,
)
from connector.engine.retry import with_retry
from connector.engine.validation import ValidationResult
from connector.models.commerce import Money, Payment, TransactionDraft
from connector.models.enums import (
    ModificationAction,
    ModificationStatus,
    TransactionState,
    TransactionType,
)
from connector.models.wire import ModificationResponse, PaymentMethodsRequest
from connector.providers.base import CartService, OrderService, PaymentService, ProcessorApi
from connector.providers.checkout_client import wrap_processor_error

logger = logging.getLogger("connector.orchestrator")

SUPPORTED_COMPONENTS = ["card", "ideal", "paypal"]

_OUTCOME_STATES = {
    ModificationStatus.RECEIVED: TransactionState.PENDING,
    ModificationStatus.APPROVED: TransactionState.SUCCESS,
    ModificationStatus.REJECTED: TransactionState.FAILURE,
}


@dataclass
class ModificationOutcome:
    outcome: ModificationStatus
    psp_reference: Optional[str] = None


def outcome_from_response(response: ModificationResponse) -> ModificationStatus:
    try:
        return ModificationStatus(response.status)
    except ValueError:
        return ModificationStatus.REJECTED


class PaymentModificationService:
    """
    The processor-facing payment service: configuration, status and the
    capture/cancel/refund/reverse modifications.
    """

    def __init__(
        self,
        config: Settings,
        payment_service: PaymentService,
        cart_service: CartService,
        order_service: OrderService,
        processor: ProcessorApi,
    ):
        self._config = config
        self._payment_service = payment_service
        self._processor = processor
        self._capture_converter = CapturePaymentConverter(config, cart_service, order_service)
        self._cancel_converter = CancelPaymentConverter(config)
        self._refund_converter = RefundPaymentConverter(config)
        self._reverse_converter = ReversePaymentConverter(config)

    # ─── Operations surface ──────────────────────────────────────────

    def config(self) -> dict[str, Any]:
        return {
            "clientKey": self._config.adyen_client_key,
            "environment": self._config.adyen_environment,
            "storedPaymentMethodsConfig": {"isEnabled": self._config.adyen_stored_payment_methods_enabled},
        }

    async def status(self) -> dict[str, Any]:
        """Processor reachability, checked by listing payment methods."""
        try:
            result = await self._processor.payment_methods(
                PaymentMethodsRequest(merchant_account=self._config.adyen_merchant_account)
            )
            check = {
                "name": "Adyen Status check",
                "status": "UP",
                "details": {"paymentMethods": result.get("paymentMethods", [])},
            }
        except ConnectorError as e:
            logger.warning("Processor status check failed: %s", e)
            check = {
                "name": "Adyen Status check",
                "status": "DOWN",
                "message": "Not able to talk to the Adyen API",
                "details": {"error": e.message},
            }

        return {"status": check["status"], "checks": [check]}

    def get_supported_components(self) -> dict[str, Any]:
        return {"components": [{"type": component} for component in SUPPORTED_COMPONENTS]}

    # ─── Modifications ───────────────────────────────────────────────

    async def modify_payment(
        self,
        payment_id: str,
        action: str,
        amount: Optional[Money] = None,
        merchant_reference: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> ModificationOutcome:
        """
        Entry point for ``POST /operations/payment-intents/{payment_id}``.

        Raises:
            ResourceNotFoundError: Unknown payment.
            InvalidJsonInputError: Unknown action, or a missing amount.
            InvalidOperationError: The ledger does not allow the modification.
            ProcessorApiError: The processor rejected or could not be reached.
        """
        payment = await self._payment_service.get_payment(payment_id)

        try:
            modification = ModificationAction(action)
        except ValueError:
            raise InvalidJsonInputError(
                f"Request body does not contain valid JSON: unknown action '{action}'",
                details={"action": action},
            ) from None

        if modification == ModificationAction.CANCEL_PAYMENT:
            return await self.cancel_payment(payment, merchant_reference)
        if modification == ModificationAction.REVERSE_PAYMENT:
            return await self.reverse_payment(payment, merchant_reference)

        if amount is None:
            raise InvalidJsonInputError(f"Action '{action}' requires an amount", details={"action": action})

        if modification == ModificationAction.CAPTURE_PAYMENT:
            return await self.capture_payment(payment, amount, merchant_reference)
        return await self.refund_payment(payment, amount, merchant_reference, transaction_id)

    async def capture_payment(
        self, payment: Payment, amount: Money, merchant_reference: Optional[str] = None
    ) -> ModificationOutcome:
        async def build():
            return await self._capture_converter.convert_request(payment, amount, merchant_reference)

        return await self._process(
            payment,
            ModificationAction.CAPTURE_PAYMENT,
            TransactionType.CHARGE,
            amount,
            self._payment_service.validate_payment_charge,
            build,
            self._processor.capture_authorised_payment,
        )

    async def cancel_payment(self, payment: Payment, merchant_reference: Optional[str] = None) -> ModificationOutcome:
        async def build():
            return self._cancel_converter.convert_request(payment, merchant_reference)

        return await self._process(
            payment,
            ModificationAction.CANCEL_PAYMENT,
            TransactionType.CANCEL_AUTHORIZATION,
            payment.amount_planned,
            self._payment_service.validate_payment_cancel,
            build,
            self._processor.cancel_authorised_payment_by_psp_reference,
        )

    async def refund_payment(
        self,
        payment: Payment,
        amount: Money,
        merchant_reference: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> ModificationOutcome:
        async def build():
            return self._refund_converter.convert_request(payment, amount, merchant_reference, transaction_id)

        return await self._process(
            payment,
            ModificationAction.REFUND_PAYMENT,
            TransactionType.REFUND,
            amount,
            self._payment_service.validate_payment_refund,
            build,
            self._processor.refund_captured_payment,
        )

    async def reverse_payment(self, payment: Payment, merchant_reference: Optional[str] = None) -> ModificationOutcome:
        """
        Undo the payment whatever its stage: refunded when it has been
        captured, cancelled when it has only been authorised.
        """
        success = [TransactionState.SUCCESS]
        if self._payment_service.has_transaction_in_state(payment, TransactionType.CHARGE, success):
            transaction_type = TransactionType.REFUND
        elif self._payment_service.has_transaction_in_state(payment, TransactionType.AUTHORIZATION, success):
            transaction_type = TransactionType.CANCEL_AUTHORIZATION
        else:
            raise InvalidOperationError("There is no successful payment transaction to reverse.")

        async def build():
            return self._reverse_converter.convert_request(payment, merchant_reference)

        return await self._process(
            payment,
            ModificationAction.REVERSE_PAYMENT,
            transaction_type,
            payment.amount_planned,
            lambda p, a: ValidationResult(is_valid=True),
            build,
            self._processor.refund_or_cancel_payment,
        )

    async def _process(
        self,
        payment: Payment,
        action: ModificationAction,
        transaction_type: TransactionType,
        amount: Money,
        validate: Callable[[Payment, Money], ValidationResult],
        build_request: Callable[[], Awaitable[Any]],
        call_processor: Callable[[str, Any], Awaitable[ModificationResponse]],
    ) -> ModificationOutcome:
        logger.info("Processing payment modification: payment=%s action=%s", payment.id, action.value)

        result = validate(payment, amount)
        if not result.is_valid:
            logger.info("Rejected %s on payment %s: %s", action.value, payment.id, result.reason)
            raise InvalidOperationError(
                result.reason, details={"paymentId": payment.id, "action": action.value}
            )

        if not payment.interface_id:
            raise InvalidOperationError(
                "Payment has no processor reference to modify", details={"paymentId": payment.id}
            )

        request = await build_request()

        updated = await self._payment_service.update_payment(
            payment.id,
            transaction=TransactionDraft(type=transaction_type, state=TransactionState.INITIAL, amount=amount),
        )
        transaction_id = updated.transactions[-1].id

        try:
            response = await call_processor(payment.interface_id, request)
        except Exception as e:
            error = wrap_processor_error(e)
            logger.error(
                "Processor call failed for %s on payment %s: %s (%s)",
                action.value,
                payment.id,
                error.message,
                error.code,
            )
            await with_retry(
                self._payment_service.update_payment,
                payment.id,
                transaction=TransactionDraft(
                    id=transaction_id,
                    type=transaction_type,
                    state=TransactionState.FAILURE,
                    amount=amount,
                ),
            )
            if error is e:
                raise
            raise error from e

        outcome = outcome_from_response(response)
        draft = TransactionDraft(
            id=transaction_id,
            type=transaction_type,
            state=_OUTCOME_STATES[outcome],
            amount=amount,
            interaction_id=response.psp_reference,
        )
        try:
            await with_retry(self._payment_service.update_payment, payment.id, transaction=draft)
        except VersionConflictError as e:
            # The processor has acted on the request, so a retry from the
            # caller would repeat it. The webhook settles the ledger instead.
            logger.error(
                "Could not record %s outcome %s on payment %s (psp=%s): %s",
                action.value,
                outcome.value,
                payment.id,
                response.psp_reference,
                e,
            )

        logger.info(
            "Payment modification completed: payment=%s action=%s outcome=%s psp=%s",
            payment.id,
            action.value,
            outcome.value,
            response.psp_reference,
        )
        return ModificationOutcome(outcome=outcome, psp_reference=response.psp_reference)
