"""
Shopper checkout endpoints. The cart is identified by the ``X-Cart-Id`` header.

POST /sessions          — Create a payment and a processor checkout session.
POST /payments          — Create (or reuse) a payment and authorise it.
POST /payments/details  — Submit additional details (redirect/3DS results).
POST /payment-methods   — Payment methods available for the cart.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header

from connector.api.dependencies import get_checkout_service
from connector.engine.checkout import CheckoutService
from connector.models.wire import ConfirmPaymentData, CreatePaymentData, CreateSessionData

router = APIRouter(tags=["payments"])


@router.post("/sessions")
async def create_session(
    body: CreateSessionData,
    x_cart_id: str = Header(...),
    service: CheckoutService = Depends(get_checkout_service),
):
    return await service.create_session(x_cart_id, body)


@router.post("/payments")
async def create_payment(
    body: CreatePaymentData,
    x_cart_id: str = Header(...),
    service: CheckoutService = Depends(get_checkout_service),
):
    return await service.create_payment(x_cart_id, body)


@router.post("/payments/details")
async def confirm_payment(
    body: ConfirmPaymentData,
    service: CheckoutService = Depends(get_checkout_service),
):
    return await service.confirm_payment(body)


@router.post("/payment-methods")
async def get_payment_methods(
    body: Optional[dict[str, Any]] = Body(None),
    x_cart_id: str = Header(...),
    service: CheckoutService = Depends(get_checkout_service),
):
    return await service.get_payment_methods(x_cart_id, body or {})
