"""FastAPI dependencies wiring the services for each request."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from connector.config import Settings, settings
from connector.database import get_session
from connector.engine.checkout import CheckoutService
from connector.engine.notifications import NotificationProcessor
from connector.engine.orchestrator import PaymentModificationService
from connector.engine.stored_payment_methods import StoredPaymentMethodService
from connector.providers.base import ProcessorApi
from connector.providers.checkout_client import AdyenCheckoutClient
from connector.providers.mock_provider import MockProcessorApi
from connector.providers.sql_store import (
    SqlCartService,
    SqlOrderService,
    SqlPaymentMethodService,
    SqlPaymentService,
)


def get_settings() -> Settings:
    return settings


def build_processor(config: Settings) -> ProcessorApi:
    if config.adyen_environment == "mock":
        return MockProcessorApi(config)
    return AdyenCheckoutClient(config)


@lru_cache
def get_processor() -> ProcessorApi:
    """One processor client per process, so its connection pool is shared."""
    return build_processor(settings)


def get_payment_service(session: AsyncSession = Depends(get_session)) -> SqlPaymentService:
    return SqlPaymentService(session)


def get_cart_service(session: AsyncSession = Depends(get_session)) -> SqlCartService:
    return SqlCartService(session)


def get_order_service(session: AsyncSession = Depends(get_session)) -> SqlOrderService:
    return SqlOrderService(session)


def get_payment_method_service(session: AsyncSession = Depends(get_session)) -> SqlPaymentMethodService:
    return SqlPaymentMethodService(session)


def get_modification_service(
    config: Settings = Depends(get_settings),
    payment_service: SqlPaymentService = Depends(get_payment_service),
    cart_service: SqlCartService = Depends(get_cart_service),
    order_service: SqlOrderService = Depends(get_order_service),
    processor: ProcessorApi = Depends(get_processor),
) -> PaymentModificationService:
    return PaymentModificationService(config, payment_service, cart_service, order_service, processor)


def get_checkout_service(
    config: Settings = Depends(get_settings),
    payment_service: SqlPaymentService = Depends(get_payment_service),
    cart_service: SqlCartService = Depends(get_cart_service),
    payment_method_service: SqlPaymentMethodService = Depends(get_payment_method_service),
    processor: ProcessorApi = Depends(get_processor),
    x_allowed_payment_methods: Optional[str] = Header(None),
) -> CheckoutService:
    allowed = [m.strip() for m in (x_allowed_payment_methods or "").split(",") if m.strip()]
    return CheckoutService(config, payment_service, cart_service, processor, allowed, payment_method_service)


def get_notification_processor(
    config: Settings = Depends(get_settings),
    payment_service: SqlPaymentService = Depends(get_payment_service),
) -> NotificationProcessor:
    return NotificationProcessor(config, payment_service)


def get_stored_payment_method_service(
    config: Settings = Depends(get_settings),
    cart_service: SqlCartService = Depends(get_cart_service),
    payment_method_service: SqlPaymentMethodService = Depends(get_payment_method_service),
    processor: ProcessorApi = Depends(get_processor),
) -> StoredPaymentMethodService:
    return StoredPaymentMethodService(config, cart_service, payment_method_service, processor)
