"""Shared test fixtures."""

import copy

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from connector.config import Settings
from connector.database import create_session_factory, init_db
from connector.engine.orchestrator import PaymentModificationService
from connector.models.commerce import Cart, Money, PaymentDraft, PaymentMethodInfo, TransactionDraft
from connector.models.enums import TransactionState, TransactionType
from connector.providers.mock_provider import MockProcessorApi
from connector.providers.sql_store import (
    SqlCartService,
    SqlOrderService,
    SqlPaymentMethodService,
    SqlPaymentService,
)

AUTH_PSP_REFERENCE = "PSPAUTH000000001"

BERLIN = {
    "firstName": "Jana",
    "lastName": "Schulz",
    "streetName": "Torstraße",
    "streetNumber": "12",
    "postalCode": "10119",
    "city": "Berlin",
    "country": "DE",
    "phone": "+49301234567",
}

# 2 boots at 10.00 discounted to 18.00, an untaxed gift wrap and taxed shipping
CART_DATA = {
    "id": "cart-001",
    "customerId": "customer-001",
    "customerEmail": "jana.schulz@example.com",
    "country": "DE",
    "locale": "en-GB",
    "lineItems": [
        {
            "id": "li-001",
            "name": {"en-GB": "Hiking boots", "de-DE": "Wanderschuhe"},
            "variant": {"id": 1, "sku": "BOOT-42"},
            "price": {"value": {"centAmount": 1000, "currencyCode": "EUR"}},
            "quantity": 2,
            "totalPrice": {"centAmount": 1800, "currencyCode": "EUR"},
            "taxedPrice": {
                "totalNet": {"centAmount": 1513, "currencyCode": "EUR"},
                "totalGross": {"centAmount": 1800, "currencyCode": "EUR"},
                "totalTax": {"centAmount": 287, "currencyCode": "EUR"},
            },
            "taxRate": {"name": "MwSt", "amount": 0.19, "includedInPrice": True, "country": "DE"},
        }
    ],
    "customLineItems": [
        {
            "id": "cli-001",
            "name": {"en-GB": "Gift wrap"},
            "money": {"centAmount": 500, "currencyCode": "EUR"},
            "quantity": 1,
            "totalPrice": {"centAmount": 500, "currencyCode": "EUR"},
        }
    ],
    "totalPrice": {"centAmount": 2795, "currencyCode": "EUR"},
    "taxedPrice": {
        "totalNet": {"centAmount": 2429, "currencyCode": "EUR"},
        "totalGross": {"centAmount": 2795, "currencyCode": "EUR"},
        "totalTax": {"centAmount": 366, "currencyCode": "EUR"},
    },
    "shippingInfo": {
        "shippingMethodName": "DHL",
        "price": {"centAmount": 495, "currencyCode": "EUR"},
        "taxedPrice": {
            "totalNet": {"centAmount": 416, "currencyCode": "EUR"},
            "totalGross": {"centAmount": 495, "currencyCode": "EUR"},
            "totalTax": {"centAmount": 79, "currencyCode": "EUR"},
        },
        "taxRate": {"name": "MwSt", "amount": 0.19, "includedInPrice": True, "country": "DE"},
    },
    "shippingAddress": BERLIN,
    "billingAddress": BERLIN,
}


@pytest.fixture
def config():
    return Settings(
        adyen_environment="mock",
        adyen_api_key="test_api_key",
        adyen_client_key="test_client_key",
        adyen_merchant_account="TestMerchant",
        processor_url="https://connector.example.com",
        merchant_return_url="https://shop.example.com/checkout/result",
        adyen_shopper_statement="",
        adyen_payment_methods_config="",
    )


@pytest.fixture
def cart() -> Cart:
    return Cart.model_validate(copy.deepcopy(CART_DATA))


@pytest.fixture
def processor(config):
    return MockProcessorApi(config, failure_rate=0.0, latency_ms=0)


@pytest_asyncio.fixture
async def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await init_db(engine)

    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def payment_service(db_session):
    return SqlPaymentService(db_session)


@pytest.fixture
def cart_service(db_session):
    return SqlCartService(db_session)


@pytest.fixture
def order_service(db_session):
    return SqlOrderService(db_session)


@pytest.fixture
def payment_method_service(db_session):
    return SqlPaymentMethodService(db_session)


@pytest.fixture
def modification_service(config, payment_service, cart_service, order_service, processor):
    return PaymentModificationService(config, payment_service, cart_service, order_service, processor)


@pytest_asyncio.fixture
async def stored_cart(cart_service, cart):
    return await cart_service.save_cart(cart)


async def _create_authorised_payment(payment_service, cart_service, cart, method):
    amount = cart_service.get_payment_amount(cart)
    payment = await payment_service.create_payment(
        PaymentDraft(
            amount_planned=amount,
            payment_method_info=PaymentMethodInfo(payment_interface="adyen", method=method),
            customer_id=cart.customer_id,
        )
    )
    await cart_service.add_payment(cart.id, payment.id)
    return await payment_service.update_payment(
        payment.id,
        psp_reference=AUTH_PSP_REFERENCE,
        transaction=TransactionDraft(
            type=TransactionType.AUTHORIZATION,
            state=TransactionState.SUCCESS,
            amount=Money(cent_amount=amount.cent_amount, currency_code=amount.currency_code),
            interaction_id=AUTH_PSP_REFERENCE,
        ),
    )


@pytest.fixture
def authorise(payment_service, cart_service):
    """Factory: a payment for a stored cart with a successful authorization, attached to the cart."""

    async def create(cart, method="scheme"):
        return await _create_authorised_payment(payment_service, cart_service, cart, method)

    return create


@pytest_asyncio.fixture
async def authorised_payment(authorise, stored_cart):
    """Card payment of 27.95 EUR, authorised under ``AUTH_PSP_REFERENCE``."""
    return await authorise(stored_cart)
