from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.logging import get_logger
from app.models.wallet import Wallet, WalletHistory, WalletHistoryType, WalletType
from app.repositories.wallet_repo import WalletHistoryRepository, WalletRepository

logger = get_logger(__name__)


class WalletService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.wallets = WalletRepository(db)
        self.history = WalletHistoryRepository(db)

    async def get_wallets(self, user_id: str) -> List[Wallet]:
        """All wallets of a user, created on first access."""
        return [await self.wallets.get_or_create(user_id, wallet) for wallet in WalletType]

    async def list_history(self, user_id: str, wallet: Optional[WalletType] = None) -> List[WalletHistory]:
        return await self.history.list_for_user(user_id, wallet)

    async def record_history(
        self,
        user_id: str,
        wallet: WalletType,
        delta_cents: int,
        reason: str,
        session=None
    ) -> WalletHistory:
        entry = WalletHistory(
            user_id=user_id,
            wallet=wallet,
            amount_cents=abs(delta_cents),
            type=WalletHistoryType.ADD if delta_cents > 0 else WalletHistoryType.DEDUCT,
            reason=reason
        )
        return await self.history.append(entry, session=session)

    async def apply_delta(
        self,
        user_id: str,
        wallet: WalletType,
        delta_cents: int,
        session=None
    ) -> Wallet:
        """Move a wallet balance. Overdrafts are allowed and only logged."""
        updated = await self.wallets.increment_balance(user_id, wallet, delta_cents, session=session)
        if updated.balance_cents < 0:
            logger.warning(
                "wallet_overdrawn",
                user_id=user_id,
                wallet=updated.type,
                balance_cents=updated.balance_cents
            )
        return updated

    async def adjust_balance(
        self,
        user_id: str,
        wallet: WalletType,
        delta_cents: int,
        reason: str,
        session=None
    ) -> Wallet:
        await self.record_history(user_id, wallet, delta_cents, reason, session=session)
        return await self.apply_delta(user_id, wallet, delta_cents, session=session)
