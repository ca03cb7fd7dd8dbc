from typing import List

from fastapi import APIRouter, Depends, status

from app.api.deps import http_error
from app.core.auth import get_current_user_id
from app.core.errors import SettleError
from app.db.mongo import get_db
from app.schemas.group import GroupCreate, GroupJoin, GroupResponse
from app.schemas.settlement import UserBalanceResponse
from app.services.group_service import GroupService
from app.services.settlement_service import SettlementService

router = APIRouter()


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_in: GroupCreate,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Create a group with the caller as owner and first member."""
    try:
        group = await GroupService(db).create_group(user_id, group_in.name, group_in.description)
    except SettleError as exc:
        raise http_error(exc)
    return GroupResponse(**group.model_dump())


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Groups the caller belongs to."""
    try:
        groups = await GroupService(db).list_groups(user_id)
    except SettleError as exc:
        raise http_error(exc)
    return [GroupResponse(**group.model_dump()) for group in groups]


@router.post("/join", response_model=GroupResponse)
async def join_group(
    payload: GroupJoin,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Join a group with its invitation code."""
    try:
        group = await GroupService(db).join_group(user_id, payload.invitation_code)
    except SettleError as exc:
        raise http_error(exc)
    return GroupResponse(**group.model_dump())


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    try:
        group = await GroupService(db).get_group_for_member(group_id, user_id)
    except SettleError as exc:
        raise http_error(exc)
    return GroupResponse(**group.model_dump())


@router.get("/{group_id}/balances", response_model=List[UserBalanceResponse])
async def get_group_balances(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Net balance of every member who appears in the group's ledger."""
    try:
        await GroupService(db).get_group_for_member(group_id, user_id)
        balances = await SettlementService(db).get_balances(group_id)
    except SettleError as exc:
        raise http_error(exc)
    return [
        UserBalanceResponse(user_id=member_id, balance_cents=amount)
        for member_id, amount in balances.items()
    ]
