import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from arap.core.config import settings

logger = logging.getLogger(__name__)

class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    # Create indexes
    await create_indexes()
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
        mongodb.db = None
        logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    # Debtor indexes
    await mongodb.db["debtors"].create_index([("created_at", 1), ("_id", 1)])
    await mongodb.db["debtors"].create_index("name")
    await mongodb.db["debtors"].create_index("payments.attempt_id")

    # Creditor indexes
    await mongodb.db["creditors"].create_index([("created_at", 1), ("_id", 1)])
    await mongodb.db["creditors"].create_index("supplier_name")
    await mongodb.db["creditors"].create_index("payments.attempt_id")

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
