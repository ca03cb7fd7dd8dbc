"""
Wallet and wallet-history repositories.

Wallet documents use the deterministic id ``{user_id}_{type}`` and are created
lazily: every balance change is an upserting ``$inc``, so a first adjustment
creates the wallet and an adjustment never races with creation.
"""

from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.core.errors import translate_store_errors
from app.db.mongo import WALLET_HISTORY, WALLETS
from app.models.wallet import WALLET_NAMES, Wallet, WalletHistory, WalletType, wallet_id


class WalletRepository:
    """Wallet balance operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[WALLETS]

    @translate_store_errors
    async def increment_balance(
        self,
        user_id: str,
        wallet: WalletType,
        delta_cents: int,
        session=None
    ) -> Wallet:
        """Atomically add delta_cents (may be negative) and return the wallet."""
        wallet = WalletType(wallet)
        now = datetime.now(timezone.utc)
        doc = await self.collection.find_one_and_update(
            {"_id": wallet_id(user_id, wallet)},
            {
                "$inc": {"balance_cents": delta_cents},
                "$set": {"updated_at": now},
                "$setOnInsert": {
                    "user_id": user_id,
                    "type": wallet.value,
                    "name": WALLET_NAMES[wallet],
                    "created_at": now
                }
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session
        )
        return Wallet(**doc)

    async def get_or_create(self, user_id: str, wallet: WalletType) -> Wallet:
        """Fetch a wallet, creating it with a zero balance if missing."""
        return await self.increment_balance(user_id, wallet, 0)


class WalletHistoryRepository:
    """Append-only wallet movement log."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[WALLET_HISTORY]

    @translate_store_errors
    async def append(self, entry: WalletHistory, session=None) -> WalletHistory:
        await self.collection.insert_one(entry.to_document(), session=session)
        return entry

    @translate_store_errors
    async def list_for_user(
        self, user_id: str, wallet: Optional[WalletType] = None
    ) -> List[WalletHistory]:
        """Wallet history, newest first."""
        query = {"user_id": user_id}
        if wallet is not None:
            query["wallet"] = WalletType(wallet).value
        docs = await self.collection.find(query).sort("created_at", -1).to_list(None)
        return [WalletHistory(**doc) for doc in docs]
