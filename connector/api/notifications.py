"""
Processor webhook endpoints.

POST /notifications               — Apply a notification to the payment ledger.
POST /notifications/tokenization  — Apply a token life cycle event to stored payment methods.

The processor redelivers anything that is not acknowledged with
``[accepted]``, so unsupported events and untracked payments are accepted
too. Version conflicts are retried here; other errors surface as 5xx/4xx
and the processor will redeliver.
"""

from fastapi import APIRouter, Depends

from connector.api.dependencies import get_notification_processor, get_stored_payment_method_service
from connector.engine.notifications import NotificationProcessor
from connector.engine.retry import with_retry
from connector.engine.stored_payment_methods import StoredPaymentMethodService
from connector.models.wire import Notification, TokenizationNotification

router = APIRouter(tags=["notifications"])

ACCEPTED = {"notificationResponse": "[accepted]"}


@router.post("/notifications")
async def receive_notification(
    notification: Notification,
    processor: NotificationProcessor = Depends(get_notification_processor),
):
    await with_retry(processor.process_notification, notification)
    return ACCEPTED


@router.post("/notifications/tokenization")
async def receive_tokenization_notification(
    notification: TokenizationNotification,
    service: StoredPaymentMethodService = Depends(get_stored_payment_method_service),
):
    await service.process_notification_tokenization(notification)
    return ACCEPTED
