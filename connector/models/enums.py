"""Enumerations for the payment ledger and processor events."""

from enum import Enum


class TransactionType(str, Enum):
    """Kinds of entries in a payment's transaction ledger."""

    AUTHORIZATION = "Authorization"
    CHARGE = "Charge"
    CANCEL_AUTHORIZATION = "CancelAuthorization"
    REFUND = "Refund"
    CHARGEBACK = "Chargeback"


class TransactionState(str, Enum):
    """Lifecycle states for a ledger transaction."""

    INITIAL = "Initial"
    PENDING = "Pending"
    SUCCESS = "Success"
    FAILURE = "Failure"


class EventCode(str, Enum):
    """Webhook event codes the notification converter understands."""

    AUTHORISATION = "AUTHORISATION"
    CAPTURE = "CAPTURE"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    CANCELLATION = "CANCELLATION"
    REFUND = "REFUND"
    REFUND_FAILED = "REFUND_FAILED"
    CHARGEBACK = "CHARGEBACK"
    EXPIRE = "EXPIRE"
    OFFER_CLOSED = "OFFER_CLOSED"
    CANCEL_OR_REFUND = "CANCEL_OR_REFUND"


class ModificationAction(str, Enum):
    """Actions accepted by the payment-intents operation."""

    CANCEL_PAYMENT = "cancelPayment"
    CAPTURE_PAYMENT = "capturePayment"
    REFUND_PAYMENT = "refundPayment"
    REVERSE_PAYMENT = "reversePayment"


class ModificationStatus(str, Enum):
    """Outcome of a modification request as reported back to the caller."""

    APPROVED = "approved"
    RECEIVED = "received"
    REJECTED = "rejected"


class ResultCode(str, Enum):
    """Processor result codes for payments and payment details calls."""

    AUTHORISED = "Authorised"
    PENDING = "Pending"
    RECEIVED = "Received"
    REFUSED = "Refused"
    ERROR = "Error"
    CANCELLED = "Cancelled"
    REDIRECT_SHOPPER = "RedirectShopper"
    IDENTIFY_SHOPPER = "IdentifyShopper"
    CHALLENGE_SHOPPER = "ChallengeShopper"
    PRESENT_TO_SHOPPER = "PresentToShopper"


class TokenizationEventType(str, Enum):
    """Recurring token life cycle webhook event types."""

    TOKEN_CREATED = "recurring.token.created"
    TOKEN_ALREADY_EXISTING = "recurring.token.alreadyExisting"
    TOKEN_DISABLED = "recurring.token.disabled"
