from datetime import date
from enum import Enum
from typing import Optional

from tresor.models.base import Record


class TontineFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TontineStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class TontinePaymentType(str, Enum):
    CONTRIBUTION = "contribution"
    POT_RECEIVED = "pot_received"


class Tontine(Record):
    """Rotating-savings group. current_cycle only moves forward."""
    name: str
    total_members: int
    contribution_amount: int
    frequency: TontineFrequency
    start_date: date
    current_cycle: int = 1
    status: TontineStatus = TontineStatus.ACTIVE

    @property
    def pot_amount(self) -> int:
        return self.contribution_amount * self.total_members


class TontineMember(Record):
    tontine_id: str
    member_name: str
    phone_number: Optional[str] = None
    position_in_order: int
    is_current_user: bool = False
    payout_date: Optional[date] = None
    # Locks position and deletion once true
    has_received_pot: bool = False


class TontinePayment(Record):
    tontine_id: str
    type: TontinePaymentType
    amount: int
    cycle_number: int
    payment_method_id: Optional[str] = None
    member_id: Optional[str] = None
    payment_date: date
    idempotency_key: Optional[str] = None
