"""
Operations endpoints used by the commerce platform.

POST /operations/payment-intents/{payment_id} — Capture, cancel, refund or reverse.
GET  /operations/config              — Client-side configuration.
GET  /operations/status              — Processor reachability.
GET  /operations/payment-components  — Supported payment components.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from connector.api.dependencies import get_modification_service
from connector.engine.orchestrator import PaymentModificationService
from connector.models.commerce import CommerceModel, Money

router = APIRouter(prefix="/operations", tags=["operations"])


class PaymentIntentAction(CommerceModel):
    action: str
    amount: Optional[Money] = None
    merchant_reference: Optional[str] = None
    transaction_id: Optional[str] = None


class PaymentIntentRequest(CommerceModel):
    actions: list[PaymentIntentAction] = Field(min_length=1)


class PaymentIntentResponse(CommerceModel):
    outcome: str
    psp_reference: Optional[str] = None


@router.post("/payment-intents/{payment_id}", response_model=PaymentIntentResponse)
async def modify_payment(
    payment_id: str,
    body: PaymentIntentRequest,
    service: PaymentModificationService = Depends(get_modification_service),
):
    """Apply the first action of the request to the payment."""
    action = body.actions[0]
    result = await service.modify_payment(
        payment_id,
        action.action,
        amount=action.amount,
        merchant_reference=action.merchant_reference,
        transaction_id=action.transaction_id,
    )
    return PaymentIntentResponse(outcome=result.outcome.value, psp_reference=result.psp_reference)


@router.get("/config")
async def get_config(service: PaymentModificationService = Depends(get_modification_service)):
    return service.config()


@router.get("/status")
async def get_status(service: PaymentModificationService = Depends(get_modification_service)):
    return await service.status()


@router.get("/payment-components")
async def get_payment_components(service: PaymentModificationService = Depends(get_modification_service)):
    return service.get_supported_components()
