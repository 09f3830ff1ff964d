"""
Obligation model - debts and credits between the user and a third party.

Design principles:
- creance: owed to the user, engagement: owed by the user
- Amounts are whole currency units (integers)
- Status: active -> partially_paid -> settled, or active|partially_paid -> cancelled
- Links to tontines, fixed charges and goals are plain ids, never owned
"""

from datetime import date
from enum import Enum
from typing import Optional

from tresor.models.base import Record


class ObligationType(str, Enum):
    CREANCE = "creance"
    ENGAGEMENT = "engagement"


class ObligationConfidence(str, Enum):
    CERTAIN = "certain"
    PROBABLE = "probable"
    UNCERTAIN = "uncertain"


class ObligationStatus(str, Enum):
    ACTIVE = "active"
    PARTIALLY_PAID = "partially_paid"
    SETTLED = "settled"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({ObligationStatus.SETTLED, ObligationStatus.CANCELLED})
OPEN_STATUSES = frozenset({ObligationStatus.ACTIVE, ObligationStatus.PARTIALLY_PAID})


class Obligation(Record):
    """
    Money owed to or by the user.

    Invariants:
    - 0 <= remaining_amount <= total_amount
    - status = settled iff remaining_amount == 0 (cancelled freezes remaining_amount)
    - confidence is always certain for engagements
    """
    type: ObligationType
    person_name: str
    description: Optional[str] = None

    total_amount: int
    remaining_amount: int

    due_date: Optional[date] = None
    confidence: ObligationConfidence = ObligationConfidence.CERTAIN
    status: ObligationStatus = ObligationStatus.ACTIVE

    # Weak references, resolved by lookup
    linked_tontine_id: Optional[str] = None
    linked_fixed_charge_id: Optional[str] = None
    linked_savings_goal_id: Optional[str] = None

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ObligationPayment(Record):
    """Append-only payment row. Never updated or deleted by the engine."""
    obligation_id: str
    amount: int
    payment_date: date
    payment_method_id: Optional[str] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = None
