from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import translate_store_errors
from app.db.mongo import GROUP_EXPENSES
from app.models.expense import GroupExpense


EXPENSE_ORDER = [("date", -1), ("created_at", -1), ("_id", -1)]


class ExpenseRepository:
    """Group expense database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[GROUP_EXPENSES]

    @translate_store_errors
    async def create_expense(self, expense: GroupExpense) -> GroupExpense:
        """Record a new expense. Expenses are never edited afterwards."""
        await self.collection.insert_one(expense.to_document())
        return expense

    @translate_store_errors
    async def list_by_group(self, group_id: str) -> List[GroupExpense]:
        """
        All expenses of a group, newest first.

        Ties on date fall back to creation time, then id, so the order (and
        with it the settlement pairing) is the same on every read.
        """
        cursor = self.collection.find({"group_id": group_id}).sort(EXPENSE_ORDER)
        docs = await cursor.to_list(None)
        return [GroupExpense(**doc) for doc in docs]
