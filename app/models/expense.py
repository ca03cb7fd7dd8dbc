from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.base import MongoModel, _utcnow


class SplitType(str, Enum):
    EQUAL = "equal"
    CUSTOM = "custom"


# Embedded documents don't need MongoModel (no separate _id)
class ExpenseSplit(BaseModel):
    user_id: str
    amount_cents: int = Field(ge=0)  # How much this user owes
    settled: bool = False
    settled_at: Optional[datetime] = None
    settled_by: Optional[str] = None


class GroupExpense(MongoModel):
    """Shared expense paid by one member on behalf of the split users.

    Invariant: sum(split.amount_cents) == amount_cents. Expenses are
    immutable once recorded.
    """
    group_id: str
    paid_by: str
    amount_cents: int = Field(gt=0)
    description: str
    category: str
    split_type: SplitType = SplitType.EQUAL
    split_details: List[ExpenseSplit] = []
    date: datetime = Field(default_factory=_utcnow)

    @property
    def split_total_cents(self) -> int:
        return sum(split.amount_cents for split in self.split_details)
