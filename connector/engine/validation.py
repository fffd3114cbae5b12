"""
Ledger validation for payment modifications.

Before a capture, cancel or refund is sent to the processor we verify that
the payment's transaction ledger allows it:

  Charge
    1. A successful authorization exists
    2. No cancellation is done or in flight
    3. Currency matches the payment and the amount is positive
    4. Amount <= authorized - charged (initial, pending or success)

  Cancel
    1. A successful authorization exists
    2. No charge or cancellation is done or in flight

  Refund
    1. Currency matches the payment and the amount is positive
    2. Amount <= charged (success) - refunded (initial, pending or success)

Each check returns a structured result so the orchestrator can fail with a
reason naming the violated precondition.
"""

from dataclasses import dataclass
from typing import Iterable

from connector.models.commerce import Money, Payment
from connector.models.enums import TransactionState, TransactionType

IN_FLIGHT_OR_DONE = (TransactionState.INITIAL, TransactionState.PENDING, TransactionState.SUCCESS)


@dataclass
class ValidationResult:
    """Result of a ledger validation."""

    is_valid: bool
    reason: str = ""


def _sum_amounts(payment: Payment, transaction_type: TransactionType, states: Iterable[TransactionState]) -> int:
    wanted = set(states)
    return sum(
        tx.amount.cent_amount
        for tx in payment.transactions
        if tx.type == transaction_type and tx.state in wanted
    )


def _has_transaction(payment: Payment, transaction_type: TransactionType, states: Iterable[TransactionState]) -> bool:
    wanted = set(states)
    return any(tx.type == transaction_type and tx.state in wanted for tx in payment.transactions)


def _check_amount(payment: Payment, amount: Money) -> ValidationResult:
    if amount.currency_code != payment.amount_planned.currency_code:
        return ValidationResult(
            is_valid=False,
            reason=f"Currency {amount.currency_code} does not match the payment currency "
            f"{payment.amount_planned.currency_code}",
        )
    if amount.cent_amount <= 0:
        return ValidationResult(is_valid=False, reason=f"Amount must be positive, got {amount.cent_amount}")
    return ValidationResult(is_valid=True)


def validate_payment_charge(payment: Payment, amount: Money) -> ValidationResult:
    if not _has_transaction(payment, TransactionType.AUTHORIZATION, [TransactionState.SUCCESS]):
        return ValidationResult(is_valid=False, reason="Payment has no successful authorization to capture")

    if _has_transaction(payment, TransactionType.CANCEL_AUTHORIZATION, IN_FLIGHT_OR_DONE):
        return ValidationResult(is_valid=False, reason="Payment authorization has been cancelled")

    result = _check_amount(payment, amount)
    if not result.is_valid:
        return result

    authorized = _sum_amounts(payment, TransactionType.AUTHORIZATION, [TransactionState.SUCCESS])
    charged = _sum_amounts(payment, TransactionType.CHARGE, IN_FLIGHT_OR_DONE)
    if amount.cent_amount > authorized - charged:
        return ValidationResult(
            is_valid=False,
            reason=f"Capture amount {amount.cent_amount} exceeds the remaining authorized amount "
            f"{authorized - charged}",
        )

    return ValidationResult(is_valid=True)


def validate_payment_cancel(payment: Payment, amount: Money) -> ValidationResult:
    if not _has_transaction(payment, TransactionType.AUTHORIZATION, [TransactionState.SUCCESS]):
        return ValidationResult(is_valid=False, reason="Payment has no successful authorization to cancel")

    if _has_transaction(payment, TransactionType.CHARGE, IN_FLIGHT_OR_DONE):
        return ValidationResult(is_valid=False, reason="Payment has already been captured")

    if _has_transaction(payment, TransactionType.CANCEL_AUTHORIZATION, IN_FLIGHT_OR_DONE):
        return ValidationResult(is_valid=False, reason="Payment authorization is already cancelled")

    return ValidationResult(is_valid=True)


def validate_payment_refund(payment: Payment, amount: Money) -> ValidationResult:
    result = _check_amount(payment, amount)
    if not result.is_valid:
        return result

    charged = _sum_amounts(payment, TransactionType.CHARGE, [TransactionState.SUCCESS])
    refunded = _sum_amounts(payment, TransactionType.REFUND, IN_FLIGHT_OR_DONE)
    if amount.cent_amount > charged - refunded:
        return ValidationResult(
            is_valid=False,
            reason=f"Refund amount {amount.cent_amount} exceeds the refundable amount {charged - refunded}",
        )

    return ValidationResult(is_valid=True)
