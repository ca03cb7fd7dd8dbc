from typing import List

from fastapi import APIRouter, Depends, status

from app.api.deps import http_error
from app.core.auth import get_current_user_id
from app.core.errors import SettleError
from app.db.mongo import get_db
from app.schemas.expense import ExpenseCreate, ExpenseResponse
from app.services.expense_service import ExpenseService
from app.services.group_service import GroupService

router = APIRouter()


@router.post("/{group_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    group_id: str,
    expense_in: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Record a shared expense (members only)."""
    try:
        group = await GroupService(db).get_group_for_member(group_id, user_id)
        expense = await ExpenseService(db).create_expense(group, user_id, expense_in)
    except SettleError as exc:
        raise http_error(exc)
    return ExpenseResponse(**expense.model_dump())


@router.get("/{group_id}/expenses", response_model=List[ExpenseResponse])
async def list_expenses(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Group expenses, newest first."""
    try:
        await GroupService(db).get_group_for_member(group_id, user_id)
        expenses = await ExpenseService(db).get_group_expenses(group_id)
    except SettleError as exc:
        raise http_error(exc)
    return [ExpenseResponse(**expense.model_dump()) for expense in expenses]
