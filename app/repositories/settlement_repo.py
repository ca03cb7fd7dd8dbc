"""
SettlementRepository - persisted group settlements.

Writes never touch a completed record:
- replace and delete are filtered on status="pending"
- versioned records are created insert-if-absent, so two concurrent
  reconciliations that mint the same version end up with one record
"""

from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.errors import StoreError, translate_store_errors
from app.db.mongo import GROUP_SETTLEMENTS
from app.models.settlement import GroupSettlement, SettlementStatus
from app.models.wallet import WalletType


class SettlementRepository:
    """Repository for group settlements."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[GROUP_SETTLEMENTS]

    @translate_store_errors
    async def list_by_group(
        self, group_id: str, status: Optional[SettlementStatus] = None
    ) -> List[GroupSettlement]:
        """All settlements of a group, oldest first."""
        query = {"group_id": group_id}
        if status is not None:
            query["status"] = SettlementStatus(status).value
        docs = await self.collection.find(query).sort([("created_at", 1), ("_id", 1)]).to_list(None)
        return [GroupSettlement(**doc) for doc in docs]

    @translate_store_errors
    async def list_pending_for_user(self, user_id: str) -> List[GroupSettlement]:
        """Pending settlements where the user is debtor or creditor."""
        docs = await self.collection.find({
            "status": SettlementStatus.PENDING.value,
            "$or": [
                {"from_user_id": user_id},
                {"to_user_id": user_id}
            ]
        }).sort("created_at", -1).to_list(None)
        return [GroupSettlement(**doc) for doc in docs]

    @translate_store_errors
    async def get(self, settlement_id: str, session=None) -> Optional[GroupSettlement]:
        doc = await self.collection.find_one({"_id": settlement_id}, session=session)
        if doc:
            return GroupSettlement(**doc)
        return None

    @translate_store_errors
    async def upsert_pending(self, settlement: GroupSettlement) -> GroupSettlement:
        """
        Set a pending record under its id.

        A completed record with the same id is left alone: the filter does not
        match it and the upsert fails on the duplicate _id instead.
        """
        await self.collection.replace_one(
            {"_id": settlement.id, "status": SettlementStatus.PENDING.value},
            settlement.to_document(),
            upsert=True
        )
        return settlement

    async def insert_if_absent(self, settlement: GroupSettlement) -> bool:
        """Insert a new record. Returns False if the id is already taken."""
        try:
            await self.collection.insert_one(settlement.to_document())
        except DuplicateKeyError:
            return False
        except PyMongoError as exc:
            raise StoreError(f"insert of settlement {settlement.id} failed: {exc}") from exc
        return True

    @translate_store_errors
    async def delete_pending(self, settlement_id: str) -> bool:
        result = await self.collection.delete_one({
            "_id": settlement_id,
            "status": SettlementStatus.PENDING.value
        })
        return result.deleted_count > 0

    @translate_store_errors
    async def mark_completed(
        self,
        settlement_id: str,
        payment_method: WalletType,
        notes: Optional[str] = None,
        session=None
    ) -> Optional[GroupSettlement]:
        """
        Compare-and-set pending -> completed.

        Returns the updated settlement, or None if it is missing or no longer
        pending.
        """
        now = datetime.now(timezone.utc)
        doc = await self.collection.find_one_and_update(
            {"_id": settlement_id, "status": SettlementStatus.PENDING.value},
            {
                "$set": {
                    "status": SettlementStatus.COMPLETED.value,
                    "payment_method": WalletType(payment_method).value,
                    "notes": notes,
                    "completed_at": now,
                    "updated_at": now
                }
            },
            return_document=ReturnDocument.AFTER,
            session=session
        )
        if doc:
            return GroupSettlement(**doc)
        return None
