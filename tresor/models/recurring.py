from datetime import date
from enum import Enum
from typing import Optional

from tresor.models.base import Record


class FixedChargeFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class FixedCharge(Record):
    name: str
    beneficiary: str = ""
    amount: int
    frequency: FixedChargeFrequency = FixedChargeFrequency.MONTHLY
    due_day: int = 1
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True
    auto_generate_obligation: bool = False
    payment_method_id: Optional[str] = None


class SavingsGoal(Record):
    name: str
    target_amount: int
    current_amount: int = 0
    deadline: date
    auto_contribute: bool = False
    monthly_contribution: int = 0
    contribute_day: Optional[int] = None
