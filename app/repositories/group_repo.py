from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.core.errors import translate_store_errors
from app.db.mongo import GROUPS
from app.models.group import ExpenseGroup


class GroupRepository:
    """Expense group database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[GROUPS]

    @translate_store_errors
    async def create_group(self, group: ExpenseGroup) -> ExpenseGroup:
        await self.collection.insert_one(group.to_document())
        return group

    @translate_store_errors
    async def get_group(self, group_id: str) -> Optional[ExpenseGroup]:
        doc = await self.collection.find_one({"_id": group_id})
        if doc:
            return ExpenseGroup(**doc)
        return None

    @translate_store_errors
    async def get_by_invitation_code(self, invitation_code: str) -> Optional[ExpenseGroup]:
        doc = await self.collection.find_one({"invitation_code": invitation_code})
        if doc:
            return ExpenseGroup(**doc)
        return None

    @translate_store_errors
    async def list_for_member(self, user_id: str) -> List[ExpenseGroup]:
        """Groups the user belongs to, newest first."""
        cursor = self.collection.find({"member_ids": user_id}).sort("created_at", -1)
        docs = await cursor.to_list(None)
        return [ExpenseGroup(**doc) for doc in docs]

    @translate_store_errors
    async def add_member(self, group_id: str, user_id: str) -> Optional[ExpenseGroup]:
        """Add a member (no-op if already present)."""
        doc = await self.collection.find_one_and_update(
            {"_id": group_id},
            {
                "$addToSet": {"member_ids": user_id},
                "$set": {"updated_at": datetime.now(timezone.utc)}
            },
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return ExpenseGroup(**doc)
        return None
