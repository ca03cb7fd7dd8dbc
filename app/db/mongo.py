from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

GROUPS = "expenseGroups"
GROUP_EXPENSES = "groupExpenses"
GROUP_SETTLEMENTS = "groupSettlements"
TRANSACTIONS = "transactions"
WALLETS = "wallets"
WALLET_HISTORY = "walletHistory"


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes(mongodb.db)
    logger.info("mongo_connected", database=settings.DATABASE_NAME)

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("mongo_disconnected")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Groups
    await db[GROUPS].create_index("member_ids")
    await db[GROUPS].create_index("invitation_code", unique=True)

    # Ledger reader: expenses by group, newest first
    await db[GROUP_EXPENSES].create_index([("group_id", 1), ("date", -1), ("created_at", -1), ("_id", -1)])

    # Settlements
    await db[GROUP_SETTLEMENTS].create_index([("group_id", 1), ("status", 1)])
    await db[GROUP_SETTLEMENTS].create_index([("from_user_id", 1), ("status", 1)])
    await db[GROUP_SETTLEMENTS].create_index([("to_user_id", 1), ("status", 1)])

    # Transactions and wallet history
    await db[TRANSACTIONS].create_index([("user_id", 1), ("date", -1)])
    await db[WALLET_HISTORY].create_index([("user_id", 1), ("wallet", 1)])

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
