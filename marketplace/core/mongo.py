import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from marketplace.core.config import settings

logger = logging.getLogger(__name__)
mongo_client: AsyncIOMotorClient | None = None
mongo_db: AsyncIOMotorDatabase | None = None


async def connect_mongo():
    global mongo_client, mongo_db
    mongo_client = AsyncIOMotorClient(settings.MONGO_URL)
    mongo_db = mongo_client[settings.MONGO_DB_NAME]
    logger.info(f"Connected to MongoDB: {settings.MONGO_DB_NAME}")


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Indexes backing product listings, order lookups and activity log queries."""
    products = db[settings.PRODUCTS_COLLECTION]
    await products.create_index([("is_active", ASCENDING), ("created_at", DESCENDING)])
    await products.create_index([("organization_id", ASCENDING), ("is_active", ASCENDING)])
    await products.create_index([("category.name", ASCENDING)])

    orders = db[settings.ORDERS_COLLECTION]
    await orders.create_index([("organization_id", ASCENDING), ("created_at", DESCENDING)])
    await orders.create_index([("customer_email", ASCENDING), ("created_at", DESCENDING)])

    logs = db[settings.LOGS_COLLECTION]
    await logs.create_index([("timestamp", DESCENDING)])
    await logs.create_index([("organization_id", ASCENDING), ("timestamp", DESCENDING)])
    logger.info("MongoDB indexes ensured")


async def close_mongo():
    global mongo_client, mongo_db
    if mongo_client:
        mongo_client.close()
        mongo_client = None
        mongo_db = None
        logger.info("MongoDB connection closed")


def get_mongo_db() -> AsyncIOMotorDatabase:
    if mongo_db is None:
        raise RuntimeError("MongoDB not connected. Ensure connect_mongo() was called.")
    return mongo_db
