from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.settlement import SettlementStatus
from app.models.wallet import WalletType


class SettlementCompleteRequest(BaseModel):
    """Request body to mark a settlement as paid."""
    payment_method: WalletType
    notes: Optional[str] = Field(None, max_length=500)


class SettlementResponse(BaseModel):
    id: str
    group_id: str
    from_user_id: str
    to_user_id: str
    amount_cents: int
    status: SettlementStatus
    version: int
    supersedes: Optional[str] = None
    payment_method: Optional[WalletType] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserBalanceResponse(BaseModel):
    """Net position of one member: positive owes, negative is owed."""
    user_id: str
    balance_cents: int
