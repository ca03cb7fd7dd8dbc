from datetime import datetime

from pydantic import BaseModel

from app.models.wallet import WalletHistoryType, WalletType


class WalletResponse(BaseModel):
    id: str
    type: WalletType
    name: str
    balance_cents: int
    updated_at: datetime


class WalletHistoryResponse(BaseModel):
    id: str
    wallet: WalletType
    amount_cents: int
    type: WalletHistoryType
    reason: str
    created_at: datetime
