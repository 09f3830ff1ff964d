"""Obligation validation and state transition rules."""
from typing import Tuple

from tresor.models.obligation import ObligationStatus
from tresor.utils.errors import LedgerValidationError


def validate_positive_amount(amount: int) -> None:
    if amount is None or amount <= 0:
        raise LedgerValidationError("amount must be positive")


def validate_payment_amount(amount: int, remaining_amount: int) -> None:
    """
    Validate a payment against an obligation.

    Rules:
    - amount must be positive
    - amount must not exceed what remains to be paid
    """
    validate_positive_amount(amount)
    if amount > remaining_amount:
        raise LedgerValidationError(
            f"amount {amount} exceeds the remaining balance of {remaining_amount}"
        )


def apply_payment(remaining_amount: int, amount: int) -> Tuple[int, ObligationStatus]:
    """
    Reduce `remaining_amount` by `amount`, clamped at zero.

    Returns the new remaining amount and the resulting status:
    settled at zero, partially_paid otherwise.
    """
    new_remaining = max(0, remaining_amount - amount)
    if new_remaining == 0:
        return 0, ObligationStatus.SETTLED
    return new_remaining, ObligationStatus.PARTIALLY_PAID


def rebase_total(old_total: int, old_remaining: int, new_total: int) -> Tuple[int, ObligationStatus]:
    """
    Shift the remaining amount by the change in total.

    The total can never go below what has already been paid.
    """
    validate_positive_amount(new_total)
    paid = old_total - old_remaining
    if new_total < paid:
        raise LedgerValidationError(
            f"total amount {new_total} is lower than the {paid} already paid"
        )
    new_remaining = max(0, old_remaining + (new_total - old_total))
    if new_remaining == 0:
        return 0, ObligationStatus.SETTLED
    if paid == 0:
        return new_remaining, ObligationStatus.ACTIVE
    return new_remaining, ObligationStatus.PARTIALLY_PAID
