from typing import List, Optional

from fastapi import APIRouter, Depends

from app.api.deps import http_error
from app.core.auth import get_current_user_id
from app.core.errors import SettleError
from app.db.mongo import get_db
from app.models.wallet import WalletType
from app.schemas.wallet import WalletHistoryResponse, WalletResponse
from app.services.wallet_service import WalletService

router = APIRouter()


@router.get("", response_model=List[WalletResponse])
async def list_wallets(
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Caller's wallets, created with a zero balance on first access."""
    try:
        wallets = await WalletService(db).get_wallets(user_id)
    except SettleError as exc:
        raise http_error(exc)
    return [WalletResponse(**wallet.model_dump()) for wallet in wallets]


@router.get("/history", response_model=List[WalletHistoryResponse])
async def list_wallet_history(
    wallet: Optional[WalletType] = None,
    user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    try:
        history = await WalletService(db).list_history(user_id, wallet)
    except SettleError as exc:
        raise http_error(exc)
    return [WalletHistoryResponse(**entry.model_dump()) for entry in history]
