"""Tests for the HTTP Checkout API client, against an httpx mock transport."""

import json

import httpx
import pytest

from connector.engine.errors import ProcessorApiError
from connector.models.wire import Amount, PaymentCaptureRequest
from connector.providers.checkout_client import AdyenCheckoutClient, base_url_for


def _client(config, handler):
    return AdyenCheckoutClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _capture_request():
    return PaymentCaptureRequest(
        merchant_account="TestMerchant",
        reference="pay-001",
        amount=Amount(value=2795, currency="EUR"),
    )


def test_base_urls(config):
    assert base_url_for(config) == "https://checkout-test.adyen.com/v71"

    live = config.model_copy(update={"adyen_environment": "live", "adyen_live_url_prefix": "1797a841fbb37ca7-Shop"})
    assert base_url_for(live) == "https://1797a841fbb37ca7-Shop-checkout-live.adyenpayments.com/checkout/v71"


@pytest.mark.asyncio
async def test_capture(config):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            201,
            json={
                "pspReference": "PSPCAPTURE000001",
                "paymentPspReference": "PSPAUTH000000001",
                "status": "received",
                "reference": "pay-001",
                "merchantAccount": "TestMerchant",
            },
        )

    async with _client(config, handler) as client:
        response = await client.capture_authorised_payment("PSPAUTH000000001", _capture_request())

    assert response.psp_reference == "PSPCAPTURE000001"
    assert response.status == "received"

    sent = requests[0]
    assert sent.url == "https://checkout-test.adyen.com/v71/payments/PSPAUTH000000001/captures"
    assert sent.headers["X-API-Key"] == "test_api_key"
    assert sent.headers["Idempotency-Key"]
    assert json.loads(sent.content) == {
        "merchantAccount": "TestMerchant",
        "reference": "pay-001",
        "amount": {"value": 2795, "currency": "EUR"},
    }


@pytest.mark.asyncio
async def test_error_response(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            422,
            json={
                "status": 422,
                "errorCode": "167",
                "message": "Original pspReference required for this operation",
                "errorType": "validation",
            },
        )

    async with _client(config, handler) as client:
        with pytest.raises(ProcessorApiError) as exc_info:
            await client.capture_authorised_payment("PSPAUTH000000001", _capture_request())

    error = exc_info.value
    assert error.status_code == 422
    assert error.error_code == "167"
    assert error.error_type == "validation"
    assert error.code == "AdyenError-167"
    assert error.message == "Original pspReference required for this operation"


@pytest.mark.asyncio
async def test_error_without_body(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream unavailable")

    async with _client(config, handler) as client:
        with pytest.raises(ProcessorApiError) as exc_info:
            await client.payments_details({"details": {}})

    assert exc_info.value.status_code == 503
    assert exc_info.value.error_code == "503"


@pytest.mark.asyncio
async def test_timeout(config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(config, handler) as client:
        with pytest.raises(ProcessorApiError) as exc_info:
            await client.capture_authorised_payment("PSPAUTH000000001", _capture_request())

    assert exc_info.value.status_code == 504
    assert exc_info.value.error_code == "Timeout"


@pytest.mark.asyncio
async def test_connection_error(config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(config, handler) as client:
        with pytest.raises(ProcessorApiError) as exc_info:
            await client.capture_authorised_payment("PSPAUTH000000001", _capture_request())

    assert exc_info.value.status_code == 502
    assert exc_info.value.error_code == "ConnectionError"


@pytest.mark.asyncio
async def test_stored_payment_methods(config):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(
            200,
            json={
                "merchantAccount": "TestMerchant",
                "shopperReference": "customer-001",
                "storedPaymentMethods": [
                    {"id": "M5N7TQ4TG5PFWR50", "type": "scheme", "brand": "visa", "lastFour": "1111",
                     "expiryMonth": "03", "expiryYear": "2030", "supportedShopperInteractions": ["Ecommerce"]},
                ],
            },
        )

    async with _client(config, handler) as client:
        listed = await client.get_tokens_for_stored_payment_details("customer-001", "TestMerchant")
        await client.delete_token_for_stored_payment_details("M5N7TQ4TG5PFWR50", "customer-001", "TestMerchant")

    [stored] = listed.stored_payment_methods
    assert stored.id == "M5N7TQ4TG5PFWR50"
    assert (stored.brand, stored.last_four, stored.expiry_year) == ("visa", "1111", "2030")

    get, delete = requests
    assert get.method == "GET"
    assert get.url.path == "/v71/storedPaymentMethods"
    assert dict(get.url.params) == {"shopperReference": "customer-001", "merchantAccount": "TestMerchant"}
    assert "Idempotency-Key" not in get.headers
    assert delete.method == "DELETE"
    assert delete.url.path == "/v71/storedPaymentMethods/M5N7TQ4TG5PFWR50"
    assert delete.headers["X-API-Key"] == "test_api_key"


@pytest.mark.asyncio
async def test_delete_unknown_token(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404, json={"status": 404, "errorCode": "000", "message": "Not found", "errorType": "validation"}
        )

    async with _client(config, handler) as client:
        with pytest.raises(ProcessorApiError) as exc_info:
            await client.delete_token_for_stored_payment_details("UNKNOWN", "customer-001", "TestMerchant")

    assert exc_info.value.status_code == 404
