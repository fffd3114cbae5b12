"""
Mock payment processor for local development and tests.

Simulates the Checkout API's behavior:
  - Configurable latency (default from settings)
  - Configurable failure rate, split between 503s and 422 validation errors
  - Processor-style 16 character psp references
  - Modifications answered with ``status: received``, like the real API

Every request is recorded in ``calls`` so tests can assert on the exact
payload the connector sent.
Stored payment method tokens live in ``stored_payment_methods``, keyed by
shopper reference.
"""

import asyncio
import random
import secrets
from typing import Any, Optional

from connector.config import Settings
from connector.engine.errors import ProcessorApiError
from connector.models.enums import ResultCode
from connector.models.wire import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    ModificationResponse,
    PaymentCancelRequest,
    PaymentCaptureRequest,
    PaymentMethodsRequest,
    PaymentRefundRequest,
    PaymentRequest,
    PaymentResponse,
    PaymentReversalRequest,
    ProcessorStoredPaymentMethod,
    StoredPaymentMethodsResponse,
)
from connector.providers.base import ProcessorApi

MOCK_PAYMENT_METHODS = [
    {"type": "scheme", "name": "Cards"},
    {"type": "ideal", "name": "iDEAL"},
    {"type": "paypal", "name": "PayPal"},
    {"type": "klarna", "name": "Pay later with Klarna."},
]


def new_psp_reference() -> str:
    return secrets.token_hex(8).upper()


class MockProcessorApi(ProcessorApi):
    def __init__(
        self,
        config: Settings,
        failure_rate: Optional[float] = None,
        latency_ms: Optional[int] = None,
        result_code: ResultCode = ResultCode.AUTHORISED,
    ):
        self._failure_rate = failure_rate if failure_rate is not None else config.mock_failure_rate
        self._latency_ms = latency_ms if latency_ms is not None else config.mock_latency_ms
        self.result_code = result_code
        self.calls: list[tuple[str, dict[str, Any]]] = []
        # shopper reference → tokens the processor holds for that shopper
        self.stored_payment_methods: dict[str, list[ProcessorStoredPaymentMethod]] = {}

    @property
    def name(self) -> str:
        return "mock_processor"

    async def _simulate(self, operation: str, body: dict[str, Any]) -> None:
        self.calls.append((operation, body))

        if self._latency_ms > 0:
            jitter = random.uniform(0.5, 1.5)
            await asyncio.sleep(self._latency_ms * jitter / 1000)

        roll = random.random()

        if roll < self._failure_rate * 0.5:
            raise ProcessorApiError(
                "Mock transient error, service temporarily unavailable",
                status_code=503,
                error_code="905",
                error_type="internal",
            )

        if roll < self._failure_rate:
            raise ProcessorApiError(
                "Mock validation error, original pspReference required",
                status_code=422,
                error_code="167",
                error_type="validation",
            )

    async def _modification(self, operation: str, psp_reference: str, body: dict[str, Any]) -> ModificationResponse:
        await self._simulate(operation, {"paymentPspReference": psp_reference, **body})
        return ModificationResponse(
            psp_reference=new_psp_reference(),
            status="received",
            payment_psp_reference=psp_reference,
            reference=body.get("reference"),
        )

    async def payments(self, request: PaymentRequest) -> PaymentResponse:
        await self._simulate("payments", request.to_wire())
        return PaymentResponse(
            psp_reference=new_psp_reference(),
            result_code=self.result_code.value,
            merchant_reference=request.reference,
        )

    async def payments_details(self, data: dict[str, Any]) -> PaymentResponse:
        await self._simulate("payments_details", data)
        return PaymentResponse(psp_reference=new_psp_reference(), result_code=self.result_code.value)

    async def payment_methods(self, request: PaymentMethodsRequest) -> dict[str, Any]:
        await self._simulate("payment_methods", request.to_wire())
        return {"paymentMethods": [dict(pm) for pm in MOCK_PAYMENT_METHODS]}

    async def sessions(self, request: CreateCheckoutSessionRequest) -> CreateCheckoutSessionResponse:
        await self._simulate("sessions", request.to_wire())
        return CreateCheckoutSessionResponse(
            id=f"CS{secrets.token_hex(8).upper()}",
            session_data=secrets.token_urlsafe(24),
            amount=request.amount,
            reference=request.reference,
            merchant_account=request.merchant_account,
            return_url=request.return_url,
        )

    async def capture_authorised_payment(
        self, psp_reference: str, request: PaymentCaptureRequest
    ) -> ModificationResponse:
        return await self._modification("capture", psp_reference, request.to_wire())

    async def cancel_authorised_payment_by_psp_reference(
        self, psp_reference: str, request: PaymentCancelRequest
    ) -> ModificationResponse:
        return await self._modification("cancel", psp_reference, request.to_wire())

    async def refund_captured_payment(
        self, psp_reference: str, request: PaymentRefundRequest
    ) -> ModificationResponse:
        return await self._modification("refund", psp_reference, request.to_wire())

    async def refund_or_cancel_payment(
        self, psp_reference: str, request: PaymentReversalRequest
    ) -> ModificationResponse:
        return await self._modification("reverse", psp_reference, request.to_wire())

    async def get_tokens_for_stored_payment_details(
        self, shopper_reference: str, merchant_account: str
    ) -> StoredPaymentMethodsResponse:
        await self._simulate(
            "stored_payment_methods", {"shopperReference": shopper_reference, "merchantAccount": merchant_account}
        )
        return StoredPaymentMethodsResponse(
            merchant_account=merchant_account,
            shopper_reference=shopper_reference,
            stored_payment_methods=list(self.stored_payment_methods.get(shopper_reference, [])),
        )

    async def delete_token_for_stored_payment_details(
        self, stored_payment_method_id: str, shopper_reference: str, merchant_account: str
    ) -> None:
        await self._simulate(
            "delete_stored_payment_method",
            {
                "storedPaymentMethodId": stored_payment_method_id,
                "shopperReference": shopper_reference,
                "merchantAccount": merchant_account,
            },
        )
        tokens = self.stored_payment_methods.get(shopper_reference, [])
        self.stored_payment_methods[shopper_reference] = [t for t in tokens if t.id != stored_payment_method_id]
