from typing import List, Optional
from fastapi import APIRouter, Depends, status
from tresor.api.deps import get_obligation_service
from tresor.models.obligation import ObligationType
from tresor.schemas.obligation import (
    ObligationCreate,
    ObligationPaymentCreate,
    ObligationPaymentResponse,
    ObligationResponse,
    ObligationSummary,
    ObligationUpdate,
    PaymentOutcomeResponse,
)
from tresor.services.obligation_service import ObligationService

router = APIRouter()


@router.get("/", response_model=List[ObligationResponse])
async def list_obligations(
    type: Optional[ObligationType] = None,
    active_only: bool = False,
    service: ObligationService = Depends(get_obligation_service)
):
    """List obligations, newest first"""
    if active_only:
        return await service.list_active(type=type)
    return await service.list_obligations(type=type)


@router.get("/summary", response_model=ObligationSummary)
async def get_summary(service: ObligationService = Depends(get_obligation_service)):
    """Totals still owed in each direction"""
    return await service.get_summary()


@router.post("/", response_model=ObligationResponse, status_code=status.HTTP_201_CREATED)
async def create_obligation(
    obligation_in: ObligationCreate,
    service: ObligationService = Depends(get_obligation_service)
):
    return await service.create(obligation_in)


@router.get("/{obligation_id}", response_model=ObligationResponse)
async def get_obligation(
    obligation_id: str,
    service: ObligationService = Depends(get_obligation_service)
):
    return await service.get(obligation_id)


@router.patch("/{obligation_id}", response_model=ObligationResponse)
async def update_obligation(
    obligation_id: str,
    obligation_in: ObligationUpdate,
    service: ObligationService = Depends(get_obligation_service)
):
    """Edit an open obligation"""
    return await service.update(obligation_id, obligation_in)


@router.post("/{obligation_id}/cancel", response_model=ObligationResponse)
async def cancel_obligation(
    obligation_id: str,
    service: ObligationService = Depends(get_obligation_service)
):
    return await service.cancel(obligation_id)


@router.post("/{obligation_id}/payments", response_model=PaymentOutcomeResponse, status_code=status.HTTP_201_CREATED)
async def log_payment(
    obligation_id: str,
    payment_in: ObligationPaymentCreate,
    service: ObligationService = Depends(get_obligation_service)
):
    """Log a payment and mirror it on the payment method"""
    return await service.log_payment(obligation_id, payment_in)


@router.get("/{obligation_id}/payments", response_model=List[ObligationPaymentResponse])
async def list_payments(
    obligation_id: str,
    service: ObligationService = Depends(get_obligation_service)
):
    return await service.list_payments(obligation_id)
