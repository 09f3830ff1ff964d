from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field

from tresor.models.obligation import Obligation
from tresor.schemas.obligation import ObligationResponse
from tresor.models.tontine import (
    TontineFrequency,
    TontinePayment,
    TontinePaymentType,
    TontineStatus,
)


class MemberIn(BaseModel):
    member_name: str
    phone_number: Optional[str] = None
    is_current_user: bool = False


class TontineCreate(BaseModel):
    """Members are given in payout order."""
    name: str
    contribution_amount: int
    frequency: TontineFrequency
    start_date: date
    members: List[MemberIn]


class TontineUpdate(BaseModel):
    """Changes apply to future cycles only."""
    name: Optional[str] = None
    contribution_amount: Optional[int] = None
    frequency: Optional[TontineFrequency] = None
    start_date: Optional[date] = None


class MemberCreate(BaseModel):
    member_name: Optional[str] = None
    phone_number: Optional[str] = None


class MemberUpdate(BaseModel):
    member_name: Optional[str] = None
    phone_number: Optional[str] = None


class MemberOrderRequest(BaseModel):
    """Every member id of the tontine, in the desired payout order."""
    member_ids: List[str]


class ContributionCreate(BaseModel):
    amount: int
    cycle_number: int
    payment_method_id: str
    payment_date: date = Field(default_factory=date.today)
    idempotency_key: Optional[str] = None


class PotReceiptCreate(BaseModel):
    member_id: str
    amount: int
    cycle_number: int
    payment_method_id: str
    payment_date: date = Field(default_factory=date.today)
    idempotency_key: Optional[str] = None


class TontineResponse(BaseModel):
    id: str
    name: str
    total_members: int
    contribution_amount: int
    frequency: TontineFrequency
    start_date: date
    current_cycle: int
    status: TontineStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def pot_amount(self) -> int:
        return self.contribution_amount * self.total_members


class MemberResponse(BaseModel):
    id: str
    tontine_id: str
    member_name: str
    phone_number: Optional[str] = None
    position_in_order: int
    is_current_user: bool
    payout_date: Optional[date] = None
    has_received_pot: bool

    model_config = ConfigDict(from_attributes=True)


class TontinePaymentResponse(BaseModel):
    id: str
    tontine_id: str
    type: TontinePaymentType
    amount: int
    cycle_number: int
    payment_method_id: Optional[str] = None
    member_id: Optional[str] = None
    payment_date: date
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TontineEventOutcome(BaseModel):
    """A logged contribution or payout and the obligation it auto-settled, if any."""
    payment: TontinePayment
    settled_obligation: Optional[Obligation] = None


class TontineEventResponse(BaseModel):
    payment: TontinePaymentResponse
    settled_obligation: Optional[ObligationResponse] = None
