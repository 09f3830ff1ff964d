from typing import List
from fastapi import APIRouter, Depends, status
from tresor.api.deps import get_tontine_service
from tresor.schemas.tontine import (
    ContributionCreate,
    MemberCreate,
    MemberOrderRequest,
    MemberResponse,
    MemberUpdate,
    PotReceiptCreate,
    TontineCreate,
    TontineEventResponse,
    TontinePaymentResponse,
    TontineResponse,
    TontineUpdate,
)
from tresor.services.tontine_service import TontineService

router = APIRouter()


@router.get("/", response_model=List[TontineResponse])
async def list_tontines(service: TontineService = Depends(get_tontine_service)):
    return await service.list_tontines()


@router.post("/", response_model=TontineResponse, status_code=status.HTTP_201_CREATED)
async def create_tontine(
    tontine_in: TontineCreate,
    service: TontineService = Depends(get_tontine_service)
):
    """Create a tontine, its members and its linked obligations"""
    return await service.create(tontine_in)


@router.get("/{tontine_id}", response_model=TontineResponse)
async def get_tontine(
    tontine_id: str,
    service: TontineService = Depends(get_tontine_service)
):
    return await service.get(tontine_id)


@router.patch("/{tontine_id}", response_model=TontineResponse)
async def update_tontine(
    tontine_id: str,
    tontine_in: TontineUpdate,
    service: TontineService = Depends(get_tontine_service)
):
    """Edit a tontine (future cycles only)"""
    return await service.update(tontine_id, tontine_in)


@router.delete("/{tontine_id}")
async def delete_tontine(
    tontine_id: str,
    service: TontineService = Depends(get_tontine_service)
):
    await service.delete(tontine_id)
    return {"message": "Tontine deleted successfully"}


# ===== MEMBERS =====

@router.get("/{tontine_id}/members", response_model=List[MemberResponse])
async def list_members(
    tontine_id: str,
    service: TontineService = Depends(get_tontine_service)
):
    """Members in payout order"""
    return await service.list_members(tontine_id)


@router.post("/{tontine_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    tontine_id: str,
    member_in: MemberCreate,
    service: TontineService = Depends(get_tontine_service)
):
    return await service.add_member(tontine_id, member_in)


@router.put("/{tontine_id}/members/order", response_model=List[MemberResponse])
async def reorder_members(
    tontine_id: str,
    order_in: MemberOrderRequest,
    service: TontineService = Depends(get_tontine_service)
):
    return await service.reorder_members(tontine_id, order_in.member_ids)


@router.patch("/{tontine_id}/members/{member_id}", response_model=MemberResponse)
async def update_member(
    tontine_id: str,
    member_id: str,
    member_in: MemberUpdate,
    service: TontineService = Depends(get_tontine_service)
):
    return await service.update_member(tontine_id, member_id, member_in)


@router.delete("/{tontine_id}/members/{member_id}")
async def delete_member(
    tontine_id: str,
    member_id: str,
    service: TontineService = Depends(get_tontine_service)
):
    await service.delete_member(tontine_id, member_id)
    return {"message": "Member removed successfully"}


@router.post("/{tontine_id}/members/{member_id}/current-user", response_model=MemberResponse)
async def set_current_user(
    tontine_id: str,
    member_id: str,
    service: TontineService = Depends(get_tontine_service)
):
    return await service.set_current_user(tontine_id, member_id)


# ===== PAYMENTS =====

@router.get("/{tontine_id}/payments", response_model=List[TontinePaymentResponse])
async def list_payments(
    tontine_id: str,
    service: TontineService = Depends(get_tontine_service)
):
    return await service.list_payments(tontine_id)


@router.post("/{tontine_id}/contributions", response_model=TontineEventResponse, status_code=status.HTTP_201_CREATED)
async def log_contribution(
    tontine_id: str,
    contribution_in: ContributionCreate,
    service: TontineService = Depends(get_tontine_service)
):
    """Pay into the tontine; settles the oldest open cycle obligation"""
    return await service.log_contribution(tontine_id, contribution_in)


@router.post("/{tontine_id}/payouts", response_model=TontineEventResponse, status_code=status.HTTP_201_CREATED)
async def receive_pot(
    tontine_id: str,
    receipt_in: PotReceiptCreate,
    service: TontineService = Depends(get_tontine_service)
):
    """Record the pot paid to a member for a cycle"""
    return await service.receive_pot(tontine_id, receipt_in)
