from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from tresor.api.deps import get_recurring_service
from tresor.core.auth import get_current_user_id
from tresor.schemas.obligation import PaymentOutcomeResponse
from tresor.services.recurring_service import RecurringObligationService

router = APIRouter()


class GenerateRequest(BaseModel):
    today: Optional[date] = None


class FixedChargePaymentRequest(BaseModel):
    payment_method_id: Optional[str] = None
    payment_date: Optional[date] = None


@router.post("/generate")
async def generate_obligations(
    request: GenerateRequest,
    user_id: str = Depends(get_current_user_id),
    service: RecurringObligationService = Depends(get_recurring_service)
):
    """Create this period's obligations for the caller's fixed charges and savings goals"""
    created = await service.generate_due_obligations(request.today, user_id=user_id)
    return {"ok": True, "created": created}


@router.post("/fixed-charges/{charge_id}/pay", response_model=PaymentOutcomeResponse)
async def pay_fixed_charge(
    charge_id: str,
    request: FixedChargePaymentRequest,
    user_id: str = Depends(get_current_user_id),
    service: RecurringObligationService = Depends(get_recurring_service)
):
    """Pay the current period of a fixed charge in full"""
    return await service.pay_fixed_charge(
        user_id,
        charge_id,
        payment_method_id=request.payment_method_id,
        payment_date=request.payment_date
    )


@router.get("/fixed-charges/{charge_id}/status")
async def get_fixed_charge_status(
    charge_id: str,
    today: Optional[date] = None,
    user_id: str = Depends(get_current_user_id),
    service: RecurringObligationService = Depends(get_recurring_service)
):
    """paid, due or overdue for the current period"""
    return {"status": await service.get_fixed_charge_status(user_id, charge_id, today)}
