"""
Webhook notification processing.

Converts a notification into ledger transactions and applies them to the
payment one by one. Redelivery is safe: each transaction is matched on
(type, interaction id) and an already-applied transaction is a no-op.

Notifications this connector cannot act on are accepted and logged rather
than rejected, so the processor does not keep redelivering them:
  - unsupported event codes
  - payments this system does not track
"""

import logging
from typing import Optional

from connector.config import Settings
from connector.converters.notification import NotificationConverter, NotificationUpdatePayment
from connector.engine.errors import ResourceNotFoundError, UnsupportedNotificationError, VersionConflictError
from connector.models.commerce import Payment
from connector.models.wire import Notification
from connector.providers.base import PaymentService

logger = logging.getLogger("connector.notifications")


class NotificationProcessor:
    def __init__(self, config: Settings, payment_service: PaymentService):
        self._payment_service = payment_service
        self._converter = NotificationConverter(config, payment_service)

    async def process_notification(self, notification: Notification) -> Optional[Payment]:
        """
        Apply one notification to its payment.

        Returns:
            The updated payment, or None when the notification was accepted
            without changing anything.

        Raises:
            VersionConflictError: A concurrent update won; safe to retry.
        """
        item = notification.item
        logger.info(
            "Processing notification %s success=%s psp=%s merchantReference=%s",
            item.event_code,
            item.success,
            item.psp_reference,
            item.merchant_reference,
        )

        try:
            update = await self._converter.convert(notification)
            payment = await self._get_payment(update)

            for tx in update.transactions:
                payment = await self._payment_service.update_payment(
                    payment.id,
                    psp_reference=update.psp_reference,
                    card_details=update.card_details,
                    transaction=tx,
                )
                logger.info(
                    "Payment %s updated to version %d: %s %s interaction=%s",
                    payment.id,
                    payment.version,
                    tx.type.value,
                    tx.state.value,
                    tx.interaction_id,
                )
            return payment

        except UnsupportedNotificationError as e:
            logger.info("Unsupported notification received: %s", e.event_code)
            return None
        except ResourceNotFoundError as e:
            logger.info("Payment not found hence accepting the notification: %s", e.message)
            return None
        except VersionConflictError:
            logger.warning("Version conflict while applying notification %s", item.psp_reference)
            raise
        except Exception as e:
            logger.error("Error processing notification %s: %s", item.psp_reference, e)
            raise

    async def _get_payment(self, update: NotificationUpdatePayment) -> Payment:
        """
        The payment a notification is about: by interface id (psp reference)
        first, then by merchant reference, which is the payment id unless the
        merchant overrode it.
        """
        if update.psp_reference:
            payments = await self._payment_service.find_payments_by_interface_id(update.psp_reference)
            if payments:
                return payments[0]

        return await self._payment_service.get_payment(update.merchant_reference)
