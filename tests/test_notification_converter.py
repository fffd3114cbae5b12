"""Tests for the webhook notification → ledger transaction converter."""

import pytest

from connector.config import DEFAULT_PAYMENT_METHOD_CONFIG, get_payment_method_config
from connector.converters.notification import (
    NotificationConverter,
    convert_notification_item,
    extract_card_details,
    resolve_cancel_or_refund,
)
from connector.engine.errors import ResourceNotFoundError, UnsupportedNotificationError
from connector.models.commerce import CardDetails, Money, Payment, Transaction
from connector.models.enums import TransactionState, TransactionType
from connector.models.wire import Notification, NotificationRequestItem

S, F = TransactionState.SUCCESS, TransactionState.FAILURE
T = TransactionType


def _item(event_code, success=True, psp="PSPEVENT00000001", **fields):
    return NotificationRequestItem.model_validate({
        "eventCode": event_code,
        "success": success,
        "amount": {"value": 2795, "currency": "EUR"},
        "pspReference": psp,
        "merchantReference": "pay-001",
        **fields,
    })


def _notification(item: NotificationRequestItem) -> Notification:
    return Notification.model_validate({
        "live": False,
        "notificationItems": [{"NotificationRequestItem": item.to_wire()}],
    })


def _payment(*transactions):
    return Payment(
        id="pay-001",
        amount_planned=Money(cent_amount=2795, currency_code="EUR"),
        interface_id="PSPAUTH000000001",
        transactions=list(transactions),
    )


def _tx(tx_id, tx_type, state, interaction_id):
    return Transaction(
        id=tx_id,
        type=tx_type,
        state=state,
        amount=Money(cent_amount=2795, currency_code="EUR"),
        interaction_id=interaction_id,
    )


@pytest.mark.parametrize(
    "event_code,success,expected_type,expected_state",
    [
        ("AUTHORISATION", True, T.AUTHORIZATION, S),
        ("AUTHORISATION", False, T.AUTHORIZATION, F),
        ("CAPTURE", True, T.CHARGE, S),
        ("CAPTURE", False, T.CHARGE, F),
        ("CAPTURE_FAILED", True, T.CHARGE, F),
        ("CANCELLATION", True, T.CANCEL_AUTHORIZATION, S),
        ("CANCELLATION", False, T.CANCEL_AUTHORIZATION, F),
        ("REFUND", True, T.REFUND, S),
        ("REFUND", False, T.REFUND, F),
        ("REFUND_FAILED", True, T.REFUND, F),
        ("CHARGEBACK", True, T.CHARGEBACK, S),
        ("CHARGEBACK", False, T.CHARGEBACK, S),
        ("EXPIRE", True, T.AUTHORIZATION, F),
        ("OFFER_CLOSED", True, T.AUTHORIZATION, F),
    ],
)
def test_event_mapping(event_code, success, expected_type, expected_state):
    drafts = convert_notification_item(
        _item(event_code, success, paymentMethod="visa"), DEFAULT_PAYMENT_METHOD_CONFIG
    )

    assert len(drafts) == 1
    assert drafts[0].type == expected_type
    assert drafts[0].state == expected_state
    assert drafts[0].interaction_id == "PSPEVENT00000001"
    assert drafts[0].amount == Money(cent_amount=2795, currency_code="EUR")


class TestAuthorisation:
    def test_method_without_separate_capture_is_also_charged(self):
        drafts = convert_notification_item(
            _item("AUTHORISATION", paymentMethod="ideal"), DEFAULT_PAYMENT_METHOD_CONFIG
        )

        assert [(d.type, d.state) for d in drafts] == [(T.AUTHORIZATION, S), (T.CHARGE, S)]
        assert {d.interaction_id for d in drafts} == {"PSPEVENT00000001"}
        assert drafts[0].amount == drafts[1].amount

    def test_failed_authorisation_is_not_charged(self):
        drafts = convert_notification_item(
            _item("AUTHORISATION", success=False, paymentMethod="ideal"), DEFAULT_PAYMENT_METHOD_CONFIG
        )
        assert [(d.type, d.state) for d in drafts] == [(T.AUTHORIZATION, F)]

    def test_unknown_method_supports_separate_capture(self):
        drafts = convert_notification_item(_item("AUTHORISATION"), DEFAULT_PAYMENT_METHOD_CONFIG)
        assert len(drafts) == 1

    def test_config_override(self, config):
        config = config.model_copy(
            update={"adyen_payment_methods_config": '{"ideal": {"supportSeparateCapture": true}}'}
        )
        drafts = convert_notification_item(
            _item("AUTHORISATION", paymentMethod="ideal"), get_payment_method_config(config)
        )
        assert len(drafts) == 1

    def test_invalid_config_entries_are_dropped(self, config):
        config = config.model_copy(
            update={"adyen_payment_methods_config": '{"visa": {"supportSeparateCapture": "no"}}'}
        )
        assert get_payment_method_config(config) == DEFAULT_PAYMENT_METHOD_CONFIG

    def test_amount_converted_to_iso_units(self):
        item = _item("AUTHORISATION", amount={"value": 100, "currency": "ISK"})
        drafts = convert_notification_item(item, DEFAULT_PAYMENT_METHOD_CONFIG)
        assert drafts[0].amount == Money(cent_amount=10000, currency_code="ISK")


def test_unsupported_event():
    with pytest.raises(UnsupportedNotificationError) as exc_info:
        convert_notification_item(_item("DONATION"), DEFAULT_PAYMENT_METHOD_CONFIG)
    assert exc_info.value.event_code == "DONATION"


class TestCancelOrRefund:
    auth = _tx("tx-auth", T.AUTHORIZATION, S, "PSPAUTH000000001")

    def _event(self, action=None, success=True):
        additional = {"modification.action": action} if action else {}
        return _item(
            "CANCEL_OR_REFUND",
            success,
            psp="PSPREVERSAL00001",
            originalReference="PSPAUTH000000001",
            additionalData=additional,
        )

    def test_no_payment(self):
        assert resolve_cancel_or_refund(self._event("refund"), None) == []

    @pytest.mark.parametrize(
        "action,expected",
        [("cancel", T.CANCEL_AUTHORIZATION), ("refund", T.REFUND), ("capture", T.CHARGE)],
    )
    def test_action_decides_type(self, action, expected):
        drafts = resolve_cancel_or_refund(self._event(action), _payment(self.auth))

        assert len(drafts) == 1
        assert drafts[0].type == expected
        assert drafts[0].state == S
        assert drafts[0].interaction_id == "PSPREVERSAL00001"

    def test_missing_action_defaults_to_cancel(self):
        drafts = resolve_cancel_or_refund(self._event(), _payment(self.auth))
        assert [(d.type, d.state) for d in drafts] == [(T.CANCEL_AUTHORIZATION, S)]

    def test_unrecognised_action_defaults_to_cancel(self):
        drafts = resolve_cancel_or_refund(self._event("adjust"), _payment(self.auth))
        assert drafts[0].type == T.CANCEL_AUTHORIZATION

    def test_matching_pending_transaction(self):
        pending = _tx("tx-cancel", T.CANCEL_AUTHORIZATION, TransactionState.PENDING, "PSPREVERSAL00001")

        drafts = resolve_cancel_or_refund(self._event("cancel", success=False), _payment(self.auth, pending))

        assert [(d.type, d.state) for d in drafts] == [(T.CANCEL_AUTHORIZATION, F)]

    def test_mismatch_fails_recorded_transaction(self):
        # recorded a cancellation, the processor refunded instead
        pending = _tx("tx-cancel", T.CANCEL_AUTHORIZATION, TransactionState.PENDING, "PSPREVERSAL00001")

        drafts = resolve_cancel_or_refund(self._event("refund"), _payment(self.auth, pending))

        assert [(d.type, d.state) for d in drafts] == [(T.CANCEL_AUTHORIZATION, F), (T.REFUND, S)]
        assert {d.interaction_id for d in drafts} == {"PSPREVERSAL00001"}


class _StubPayments:
    """Just enough of a payment service for payment lookups."""

    def __init__(self, payments):
        self.payments = payments
        self.lookups = []

    async def find_payments_by_interface_id(self, interface_id):
        self.lookups.append(("interface_id", interface_id))
        return [p for p in self.payments if p.interface_id == interface_id]

    async def get_payment(self, payment_id):
        self.lookups.append(("id", payment_id))
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        raise ResourceNotFoundError("payment", payment_id)


@pytest.mark.asyncio
async def test_converter_update_payload(config):
    payments = _StubPayments([])
    converter = NotificationConverter(config, payments)

    update = await converter.convert(_notification(_item("CAPTURE", originalReference="PSPAUTH000000001")))

    assert update.merchant_reference == "pay-001"
    assert update.psp_reference == "PSPAUTH000000001"
    assert [(d.type, d.state) for d in update.transactions] == [(T.CHARGE, S)]
    assert payments.lookups == []


@pytest.mark.asyncio
async def test_converter_cancel_or_refund_looks_up_payment(config):
    pending = _tx("tx-cancel", T.CANCEL_AUTHORIZATION, TransactionState.PENDING, "PSPREVERSAL00001")
    payments = _StubPayments([_payment(TestCancelOrRefund.auth, pending)])
    converter = NotificationConverter(config, payments)

    item = _item(
        "CANCEL_OR_REFUND",
        psp="PSPREVERSAL00001",
        originalReference="PSPAUTH000000001",
        additionalData={"modification.action": "refund"},
    )
    update = await converter.convert(_notification(item))

    assert payments.lookups == [("interface_id", "PSPAUTH000000001")]
    assert [(d.type, d.state) for d in update.transactions] == [(T.CANCEL_AUTHORIZATION, F), (T.REFUND, S)]


@pytest.mark.asyncio
async def test_converter_cancel_or_refund_falls_back_to_merchant_reference(config):
    payment = _payment(TestCancelOrRefund.auth).model_copy(update={"interface_id": None})
    payments = _StubPayments([payment])
    converter = NotificationConverter(config, payments)

    item = _item("CANCEL_OR_REFUND", psp="PSPREVERSAL00001", additionalData={"modification.action": "cancel"})
    update = await converter.convert(_notification(item))

    assert payments.lookups == [("interface_id", "PSPREVERSAL00001"), ("id", "pay-001")]
    assert [(d.type, d.state) for d in update.transactions] == [(T.CANCEL_AUTHORIZATION, S)]


@pytest.mark.asyncio
async def test_converter_cancel_or_refund_unknown_payment(config):
    converter = NotificationConverter(config, _StubPayments([]))
    item = _item("CANCEL_OR_REFUND", psp="PSPREVERSAL00001", merchantReference="pay-unknown")

    update = await converter.convert(_notification(item))

    assert update.transactions == []


class TestCardDetails:
    card_data = {"paymentMethod": "mc", "cardSummary": "4444", "expiryDate": "3/2030"}

    def test_card_authorisation(self):
        details = extract_card_details(_item("AUTHORISATION", paymentMethod="mc", additionalData=self.card_data))
        assert details == CardDetails(brand="mastercard", last_four="4444", expiry_month=3, expiry_year=2030)

    def test_brand_falls_back_to_payment_method(self):
        item = _item("AUTHORISATION", paymentMethod="visa", additionalData={"cardSummary": "1111"})

        details = extract_card_details(item)

        assert details.brand == "visa"
        assert details.last_four == "1111"
        assert details.expiry_month is None and details.expiry_year is None

    def test_unparseable_expiry(self):
        item = _item("AUTHORISATION", paymentMethod="visa", additionalData={"expiryDate": "soon"})
        assert extract_card_details(item).expiry_year is None

    @pytest.mark.parametrize(
        "event_code,success,payment_method",
        [
            ("AUTHORISATION", False, "visa"),
            ("CAPTURE", True, "visa"),
            ("AUTHORISATION", True, "ideal"),
            ("AUTHORISATION", True, None),
        ],
    )
    def test_no_details(self, event_code, success, payment_method):
        fields = {"paymentMethod": payment_method} if payment_method else {}
        assert extract_card_details(_item(event_code, success, additionalData=self.card_data, **fields)) is None


@pytest.mark.asyncio
async def test_converter_card_details_only_when_enabled(config):
    item = _item("AUTHORISATION", paymentMethod="mc", additionalData=TestCardDetails.card_data)

    disabled = await NotificationConverter(config, _StubPayments([])).convert(_notification(item))
    assert disabled.card_details is None

    config = config.model_copy(update={"adyen_store_payment_method_details_enabled": True})
    enabled = await NotificationConverter(config, _StubPayments([])).convert(_notification(item))
    assert enabled.card_details.brand == "mastercard"
    assert enabled.card_details.last_four == "4444"
