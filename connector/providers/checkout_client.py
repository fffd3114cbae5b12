"""Adyen Checkout API client over httpx."""

import logging
import uuid
from typing import Any, Optional

import httpx

from connector.config import Settings
from connector.engine.errors import ConnectorError, ProcessorApiError
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
    StoredPaymentMethodsResponse,
)
from connector.providers.base import ProcessorApi

logger = logging.getLogger("connector.checkout_client")

API_VERSION = "v71"
TEST_BASE_URL = f"https://checkout-test.adyen.com/{API_VERSION}"
LIVE_BASE_URL = "https://{prefix}-checkout-live.adyenpayments.com/checkout/" + API_VERSION


def base_url_for(config: Settings) -> str:
    if config.adyen_environment == "live":
        return LIVE_BASE_URL.format(prefix=config.adyen_live_url_prefix)
    return TEST_BASE_URL


def wrap_processor_error(error: Exception) -> ProcessorApiError:
    """Translate anything raised while talking to the processor into a ``ProcessorApiError``."""
    if isinstance(error, ProcessorApiError):
        return error
    if isinstance(error, ConnectorError):
        return ProcessorApiError(
            error.message, status_code=error.status_code, error_code=error.code
        )
    return ProcessorApiError(str(error) or type(error).__name__, status_code=500, error_code="UnexpectedError")


class AdyenCheckoutClient(ProcessorApi):
    """
    Client for the Adyen Checkout API.

    Error responses carry ``{status, errorCode, message, errorType}`` and are
    raised as ``ProcessorApiError`` with the same fields. Timeouts and
    connection failures are raised as ``ProcessorApiError`` too (504 / 502),
    so callers only ever handle one error type.
    """

    def __init__(self, config: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url_for(config)
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=config.http_timeout_seconds)
        self._headers = {"X-API-Key": config.adyen_api_key, "Content-Type": "application/json"}

        logger.info("Adyen checkout client initialized for %s", self.base_url)

    @property
    def name(self) -> str:
        return "adyen_checkout"

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        headers = {**self._headers, "Idempotency-Key": str(uuid.uuid4())}
        response = await self._send("POST", path, json=body, headers=headers)
        return response.json()

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        kwargs.setdefault("headers", self._headers)

        try:
            response = await self.http_client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("Processor timeout on %s: %s", path, e)
            raise ProcessorApiError(f"Processor timeout: {e}", status_code=504, error_code="Timeout") from e
        except httpx.RequestError as e:
            logger.error("Processor request error on %s: %s", path, e)
            raise ProcessorApiError(
                f"Processor request error: {e}", status_code=502, error_code="ConnectionError"
            ) from e

        if response.is_error:
            raise self._error_from_response(path, response)

        return response

    @staticmethod
    def _error_from_response(path: str, response: httpx.Response) -> ProcessorApiError:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        logger.warning(
            "Processor error on %s: status=%d errorCode=%s message=%s",
            path,
            response.status_code,
            data.get("errorCode"),
            data.get("message"),
        )
        return ProcessorApiError(
            data.get("message") or response.reason_phrase or "Processor error",
            status_code=int(data.get("status") or response.status_code),
            error_code=str(data.get("errorCode") or response.status_code),
            error_type=data.get("errorType"),
        )

    async def payments(self, request: PaymentRequest) -> PaymentResponse:
        return PaymentResponse.model_validate(await self._post("/payments", request.to_wire()))

    async def payments_details(self, data: dict[str, Any]) -> PaymentResponse:
        return PaymentResponse.model_validate(await self._post("/payments/details", data))

    async def payment_methods(self, request: PaymentMethodsRequest) -> dict[str, Any]:
        return await self._post("/paymentMethods", request.to_wire())

    async def sessions(self, request: CreateCheckoutSessionRequest) -> CreateCheckoutSessionResponse:
        return CreateCheckoutSessionResponse.model_validate(await self._post("/sessions", request.to_wire()))

    async def capture_authorised_payment(
        self, psp_reference: str, request: PaymentCaptureRequest
    ) -> ModificationResponse:
        data = await self._post(f"/payments/{psp_reference}/captures", request.to_wire())
        return ModificationResponse.model_validate(data)

    async def cancel_authorised_payment_by_psp_reference(
        self, psp_reference: str, request: PaymentCancelRequest
    ) -> ModificationResponse:
        data = await self._post(f"/payments/{psp_reference}/cancels", request.to_wire())
        return ModificationResponse.model_validate(data)

    async def refund_captured_payment(
        self, psp_reference: str, request: PaymentRefundRequest
    ) -> ModificationResponse:
        data = await self._post(f"/payments/{psp_reference}/refunds", request.to_wire())
        return ModificationResponse.model_validate(data)

    async def refund_or_cancel_payment(
        self, psp_reference: str, request: PaymentReversalRequest
    ) -> ModificationResponse:
        data = await self._post(f"/payments/{psp_reference}/reversals", request.to_wire())
        return ModificationResponse.model_validate(data)

    async def get_tokens_for_stored_payment_details(
        self, shopper_reference: str, merchant_account: str
    ) -> StoredPaymentMethodsResponse:
        response = await self._send(
            "GET",
            "/storedPaymentMethods",
            params={"shopperReference": shopper_reference, "merchantAccount": merchant_account},
        )
        return StoredPaymentMethodsResponse.model_validate(response.json())

    async def delete_token_for_stored_payment_details(
        self, stored_payment_method_id: str, shopper_reference: str, merchant_account: str
    ) -> None:
        await self._send(
            "DELETE",
            f"/storedPaymentMethods/{stored_payment_method_id}",
            params={"shopperReference": shopper_reference, "merchantAccount": merchant_account},
        )
