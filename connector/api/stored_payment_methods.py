"""
Stored payment methods of the cart's customer. The cart is identified by the ``X-Cart-Id`` header.

GET    /stored-payment-methods       — The customer's stored payment methods with display data.
DELETE /stored-payment-methods/{id}  — Remove a stored payment method and its processor token.
"""

from fastapi import APIRouter, Depends, Header, Response

from connector.api.dependencies import get_stored_payment_method_service
from connector.engine.stored_payment_methods import StoredPaymentMethodService

router = APIRouter(prefix="/stored-payment-methods", tags=["stored-payment-methods"])


@router.get("")
async def get_stored_payment_methods(
    x_cart_id: str = Header(...),
    service: StoredPaymentMethodService = Depends(get_stored_payment_method_service),
):
    return await service.get_stored_payment_methods(x_cart_id)


@router.delete("/{payment_method_id}", status_code=204)
async def delete_stored_payment_method(
    payment_method_id: str,
    x_cart_id: str = Header(...),
    service: StoredPaymentMethodService = Depends(get_stored_payment_method_service),
):
    await service.delete_stored_payment_method(x_cart_id, payment_method_id)
    return Response(status_code=204)
