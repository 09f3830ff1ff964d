from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from tresor.models.obligation import (
    Obligation,
    ObligationConfidence,
    ObligationPayment,
    ObligationStatus,
    ObligationType,
)


class ObligationCreate(BaseModel):
    type: ObligationType
    person_name: str
    description: Optional[str] = None
    total_amount: int
    due_date: Optional[date] = None
    confidence: Optional[ObligationConfidence] = None
    linked_tontine_id: Optional[str] = None
    linked_fixed_charge_id: Optional[str] = None
    linked_savings_goal_id: Optional[str] = None


class ObligationUpdate(BaseModel):
    """Partial edit. Changing total_amount shifts remaining_amount by the same delta."""
    person_name: Optional[str] = None
    description: Optional[str] = None
    total_amount: Optional[int] = None
    due_date: Optional[date] = None
    confidence: Optional[ObligationConfidence] = None


class ObligationPaymentCreate(BaseModel):
    amount: int
    payment_date: date = Field(default_factory=date.today)
    payment_method_id: str
    notes: Optional[str] = None
    idempotency_key: Optional[str] = None


class ObligationResponse(BaseModel):
    id: str
    type: ObligationType
    person_name: str
    description: Optional[str] = None
    total_amount: int
    remaining_amount: int
    due_date: Optional[date] = None
    confidence: ObligationConfidence
    status: ObligationStatus
    linked_tontine_id: Optional[str] = None
    linked_fixed_charge_id: Optional[str] = None
    linked_savings_goal_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ObligationPaymentResponse(BaseModel):
    id: str
    obligation_id: str
    amount: int
    payment_date: date
    payment_method_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentOutcome(BaseModel):
    """Result of logging a payment. `settled` tells the caller the obligation closed."""
    settled: bool
    obligation: Obligation
    payment: ObligationPayment


class PaymentOutcomeResponse(BaseModel):
    settled: bool
    obligation: ObligationResponse
    payment: ObligationPaymentResponse


class ObligationSummary(BaseModel):
    """Remaining amounts over open obligations."""
    owed_to_me: int
    i_owe: int
    net: int
    open_count: int
