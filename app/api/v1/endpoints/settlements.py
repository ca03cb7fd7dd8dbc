from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import http_error
from app.core.auth import get_current_user_id
from app.core.errors import SettleError
from app.db.mongo import get_db
from app.schemas.settlement import SettlementCompleteRequest, SettlementResponse
from app.services.group_service import GroupService
from app.services.settlement_service import SettlementService

router = APIRouter()


@router.get("/groups/{group_id}/settlements", response_model=List[SettlementResponse])
async def list_group_settlements(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Stored settlements of a group, as of the last reconciliation."""
    try:
        await GroupService(db).get_group_for_member(group_id, user_id)
        settlements = await SettlementService(db).list_group_settlements(group_id)
    except SettleError as exc:
        raise http_error(exc)
    return [SettlementResponse(**s.model_dump()) for s in settlements]


@router.post("/groups/{group_id}/settlements/reconcile", response_model=List[SettlementResponse])
async def reconcile_group_settlements(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Recompute settlements from the group's expenses and persist them."""
    try:
        await GroupService(db).get_group_for_member(group_id, user_id)
        settlements = await SettlementService(db).reconcile(group_id)
    except SettleError as exc:
        raise http_error(exc)
    return [SettlementResponse(**s.model_dump()) for s in settlements]


@router.get("/settlements/pending", response_model=List[SettlementResponse])
async def list_my_pending_settlements(
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Pending settlements the caller owes or is owed, across all groups."""
    try:
        settlements = await SettlementService(db).list_pending_for_user(user_id)
    except SettleError as exc:
        raise http_error(exc)
    return [SettlementResponse(**s.model_dump()) for s in settlements]


@router.post("/settlements/{settlement_id}/complete", response_model=SettlementResponse)
async def complete_settlement(
    settlement_id: str,
    payload: SettlementCompleteRequest,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Mark a pending settlement as paid (group members only)."""
    service = SettlementService(db)
    try:
        settlement = await service.get_settlement(settlement_id)
        await GroupService(db).get_group_for_member(settlement.group_id, user_id)
        completed = await service.complete(settlement_id, payload.payment_method, payload.notes)
    except SettleError as exc:
        raise http_error(exc)
    return SettlementResponse(**completed.model_dump())
