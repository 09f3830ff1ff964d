"""Balance sufficiency check for debits against a payment method."""
from typing import Optional
from pydantic import BaseModel


class BalanceCheckResult(BaseModel):
    sufficient: bool
    current_balance: int
    delta: int
    reason: Optional[str] = None


def check_balance_sufficiency(
    balance: int,
    allow_negative_balance: bool,
    delta: int,
    method_name: str = ""
) -> BalanceCheckResult:
    """
    Check whether applying `delta` (negative for a debit) to `balance` is permitted.

    Rules:
    - Methods allowing a negative balance always pass
    - Otherwise the resulting balance must not go below zero
    """
    new_balance = balance + delta
    if not allow_negative_balance and new_balance < 0:
        label = method_name or "payment method"
        return BalanceCheckResult(
            sufficient=False,
            current_balance=balance,
            delta=delta,
            reason=(
                f"Insufficient balance on {label}: current balance {balance}, "
                f"amount required {abs(delta)}"
            )
        )
    return BalanceCheckResult(sufficient=True, current_balance=balance, delta=delta)
