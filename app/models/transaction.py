"""
Ledger transaction - one entry in a user's personal money ledger.

The settlement engine only appends to this ledger: a group expense paid from a
wallet, or a completed settlement paid to another member.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from app.models.base import MongoModel, _utcnow
from app.models.wallet import WalletType


SETTLEMENT_CATEGORY = "settlement"


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


class LedgerTransaction(MongoModel):
    user_id: str
    date: datetime = Field(default_factory=_utcnow)
    amount_cents: int = Field(gt=0)  # Sign is derived from type
    category: str
    item: Optional[str] = None
    wallet: WalletType
    type: TransactionType = TransactionType.EXPENSE
    notes: Optional[str] = None

    is_settlement: bool = False
    settled: bool = False

    # Back-references into the group engine
    group_id: Optional[str] = None
    settlement_id: Optional[str] = None
    expense_id: Optional[str] = None
