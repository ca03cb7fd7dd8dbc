from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import translate_store_errors
from app.db.mongo import TRANSACTIONS
from app.models.transaction import LedgerTransaction


class TransactionRepository:
    """Personal ledger entries."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[TRANSACTIONS]

    @translate_store_errors
    async def add(self, transaction: LedgerTransaction, session=None) -> LedgerTransaction:
        await self.collection.insert_one(transaction.to_document(), session=session)
        return transaction

