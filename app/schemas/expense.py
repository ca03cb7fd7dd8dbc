from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.expense import SplitType
from app.models.wallet import WalletType


class SplitBase(BaseModel):
    user_id: str
    amount_cents: int = Field(..., ge=0)

    model_config = {"from_attributes": True}


class ExpenseCreate(BaseModel):
    """
    New group expense.

    - equal split: member_ids (defaults to every group member)
    - custom split: splits, summing to amount_cents
    - wallet: when set, the payer's wallet is debited and a ledger
      transaction is recorded
    """
    amount_cents: int = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=50)
    paid_by: Optional[str] = None  # Defaults to the caller
    split_type: SplitType = SplitType.EQUAL
    member_ids: Optional[List[str]] = None
    splits: Optional[List[SplitBase]] = None
    date: Optional[datetime] = None
    wallet: Optional[WalletType] = None


class ExpenseSplitResponse(BaseModel):
    user_id: str
    amount_cents: int
    settled: bool
    settled_at: Optional[datetime] = None
    settled_by: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: str
    group_id: str
    paid_by: str
    amount_cents: int
    description: str
    category: str
    split_type: SplitType
    split_details: List[ExpenseSplitResponse]
    date: datetime
    created_at: datetime
    updated_at: datetime
