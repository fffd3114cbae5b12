"""
Webhook notification → ledger transactions.

Each supported event code maps to one transaction type and to the state the
transaction takes when the event reports success or failure:

  AUTHORISATION     Authorization        Success / Failure
  CAPTURE           Charge               Success / Failure
  CAPTURE_FAILED    Charge               Failure (always)
  CANCELLATION      CancelAuthorization  Success / Failure
  REFUND            Refund               Success / Failure
  REFUND_FAILED     Refund               Failure (always)
  CHARGEBACK        Chargeback           Success (always)
  EXPIRE            Authorization        Failure (always)
  OFFER_CLOSED      Authorization        Failure (always)

Two events need more than the table:

  - A successful AUTHORISATION for a method that settles on authorisation
    (``supportSeparateCapture`` is false) also yields a successful Charge,
    because no CAPTURE event will follow.
  - CANCEL_OR_REFUND does not say what the processor did. The action is read
    from ``additionalData['modification.action']`` and compared with the
    transaction the connector created for the same psp reference; see
    ``resolve_cancel_or_refund``.

Every transaction carries the event amount in ISO minor units and
``interactionId = pspReference``, which is what makes redelivery idempotent.

With ``adyen_store_payment_method_details_enabled``, a successful AUTHORISATION
of a card payment also reports the card's brand, last four digits and expiry
(the ``cardSummary`` and ``expiryDate`` additional data) for the payment's
method info.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from connector.config import Settings, get_payment_method_config
from connector.engine.errors import ResourceNotFoundError, UnsupportedNotificationError
from connector.mapping.currencies import to_iso_minor_units
from connector.converters.helpers import (
    convert_card_brand_from_processor_format,
    is_scheme_card_brand,
    parse_expiry_date,
)
from connector.models.commerce import CardDetails, Money, Payment, TransactionDraft
from connector.models.enums import EventCode, TransactionState, TransactionType
from connector.models.wire import Notification, NotificationRequestItem
from connector.providers.base import PaymentService

logger = logging.getLogger("connector.notifications")


@dataclass(frozen=True)
class TransactionRule:
    type: TransactionType
    on_success: TransactionState
    on_failure: TransactionState

    def state_for(self, success: bool) -> TransactionState:
        return self.on_success if success else self.on_failure


_S, _F = TransactionState.SUCCESS, TransactionState.FAILURE

TRANSACTION_RULES: dict[EventCode, TransactionRule] = {
    EventCode.AUTHORISATION: TransactionRule(TransactionType.AUTHORIZATION, _S, _F),
    EventCode.CAPTURE: TransactionRule(TransactionType.CHARGE, _S, _F),
    EventCode.CAPTURE_FAILED: TransactionRule(TransactionType.CHARGE, _F, _F),
    EventCode.CANCELLATION: TransactionRule(TransactionType.CANCEL_AUTHORIZATION, _S, _F),
    EventCode.REFUND: TransactionRule(TransactionType.REFUND, _S, _F),
    EventCode.REFUND_FAILED: TransactionRule(TransactionType.REFUND, _F, _F),
    EventCode.CHARGEBACK: TransactionRule(TransactionType.CHARGEBACK, _S, _S),
    EventCode.EXPIRE: TransactionRule(TransactionType.AUTHORIZATION, _F, _F),
    EventCode.OFFER_CLOSED: TransactionRule(TransactionType.AUTHORIZATION, _F, _F),
}

# additionalData['modification.action'] of a CANCEL_OR_REFUND event
MODIFICATION_ACTIONS: dict[str, TransactionType] = {
    "cancel": TransactionType.CANCEL_AUTHORIZATION,
    "refund": TransactionType.REFUND,
    "capture": TransactionType.CHARGE,
}


@dataclass
class NotificationUpdatePayment:
    """Everything a notification changes on one payment."""

    merchant_reference: str
    psp_reference: str
    payment_method: Optional[str] = None
    transactions: list[TransactionDraft] = field(default_factory=list)
    card_details: Optional[CardDetails] = None


def parse_event_code(event_code: str) -> EventCode:
    try:
        return EventCode(event_code)
    except ValueError:
        raise UnsupportedNotificationError(event_code) from None


def populate_amount(item: NotificationRequestItem) -> Money:
    return Money(
        cent_amount=to_iso_minor_units(item.amount.value, item.amount.currency),
        currency_code=item.amount.currency,
    )


def _draft(item: NotificationRequestItem, transaction_type: TransactionType, state: TransactionState) -> TransactionDraft:
    return TransactionDraft(
        type=transaction_type,
        state=state,
        amount=populate_amount(item),
        interaction_id=item.psp_reference,
    )


def resolve_cancel_or_refund(item: NotificationRequestItem, payment: Optional[Payment]) -> list[TransactionDraft]:
    """
    Work out what a CANCEL_OR_REFUND event did to ``payment``.

    The connector records a reversal up front as either a CancelAuthorization
    or a Refund, depending on whether the payment had been captured. When the
    processor reports a different action for the same psp reference, the
    recorded transaction is failed and the actual action is added, so no
    transaction stays pending forever. Without a payment nothing is emitted.

    A psp reference with no recorded transaction is not a mismatch: only the
    actual action is emitted, with no CancelAuthorization failure beside it.
    """
    if payment is None:
        return []

    action = item.additional_data.get("modification.action")
    transaction_type = MODIFICATION_ACTIONS.get(action, TransactionType.CANCEL_AUTHORIZATION)
    state = _S if item.success else _F

    existing = next((tx for tx in payment.transactions if tx.interaction_id == item.psp_reference), None)
    if existing is not None and existing.type != transaction_type:
        logger.info(
            "CANCEL_OR_REFUND %s performed %s but payment %s recorded %s",
            item.psp_reference,
            transaction_type.value,
            payment.id,
            existing.type.value,
        )
        return [
            _draft(item, existing.type, TransactionState.FAILURE),
            _draft(item, transaction_type, state),
        ]

    return [_draft(item, transaction_type, state)]


def convert_notification_item(
    item: NotificationRequestItem,
    payment_method_config: dict[str, dict[str, bool]],
    payment: Optional[Payment] = None,
) -> list[TransactionDraft]:
    """
    Transactions for one notification item.

    ``payment`` is only consulted for CANCEL_OR_REFUND.

    Raises:
        UnsupportedNotificationError: The event code is not mapped.
    """
    event_code = parse_event_code(item.event_code)

    if event_code == EventCode.CANCEL_OR_REFUND:
        return resolve_cancel_or_refund(item, payment)

    rule = TRANSACTION_RULES[event_code]
    drafts = [_draft(item, rule.type, rule.state_for(item.success))]

    if event_code == EventCode.AUTHORISATION and item.success:
        method_config = payment_method_config.get(item.payment_method or "", {})
        if not method_config.get("supportSeparateCapture", True):
            drafts.append(_draft(item, TransactionType.CHARGE, TransactionState.SUCCESS))

    return drafts


def extract_card_details(item: NotificationRequestItem) -> Optional[CardDetails]:
    """
    Card details of a successful card AUTHORISATION, None for anything else.

    For card payments ``paymentMethod`` is the card brand (``visa``, ``mc``,
    ...) rather than ``scheme``.
    """
    if item.event_code != EventCode.AUTHORISATION.value or not item.success:
        return None
    if not is_scheme_card_brand(item.payment_method):
        return None

    expiry_month, expiry_year = parse_expiry_date(item.additional_data.get("expiryDate"))
    return CardDetails(
        brand=convert_card_brand_from_processor_format(
            item.additional_data.get("paymentMethod") or item.payment_method
        ),
        last_four=item.additional_data.get("cardSummary"),
        expiry_month=expiry_month,
        expiry_year=expiry_year,
    )


class NotificationConverter:
    def __init__(self, config: Settings, payment_service: PaymentService):
        self._payment_method_config = get_payment_method_config(config)
        self._store_card_details = config.adyen_store_payment_method_details_enabled
        self._payment_service = payment_service

    async def convert(self, notification: Notification) -> NotificationUpdatePayment:
        item = notification.item
        event_code = parse_event_code(item.event_code)

        payment = None
        if event_code == EventCode.CANCEL_OR_REFUND:
            payment = await self._find_payment(item)

        return NotificationUpdatePayment(
            merchant_reference=item.merchant_reference,
            psp_reference=item.original_reference or item.psp_reference,
            payment_method=item.payment_method,
            transactions=convert_notification_item(item, self._payment_method_config, payment),
            card_details=extract_card_details(item) if self._store_card_details else None,
        )

    async def _find_payment(self, item: NotificationRequestItem) -> Optional[Payment]:
        interface_id = item.original_reference or item.psp_reference
        payments = await self._payment_service.find_payments_by_interface_id(interface_id)
        if payments:
            return payments[0]

        try:
            return await self._payment_service.get_payment(item.merchant_reference)
        except ResourceNotFoundError:
            logger.info(
                "No payment for CANCEL_OR_REFUND %s (merchant reference %s), ignoring",
                item.psp_reference,
                item.merchant_reference,
            )
            return None
