"""MongoDB database connection and client management."""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from accessgate.config import settings

logger = logging.getLogger(__name__)

# Global MongoDB client and database
mongodb_client: AsyncIOMotorClient | None = None
mongodb_database: AsyncIOMotorDatabase | None = None


async def init_mongodb() -> None:
    """Initialize MongoDB connection."""
    global mongodb_client, mongodb_database

    mongodb_client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb_database = mongodb_client[settings.MONGODB_DATABASE]

    # Try to create indexes, but don't fail startup if it errors
    try:
        await _create_indexes()
    except Exception as e:
        logger.warning(f"Could not create MongoDB indexes (non-fatal): {e}")


async def _create_indexes() -> None:
    """Create MongoDB indexes for activity queries."""
    if mongodb_database is None:
        return

    activities = mongodb_database.activities
    await activities.create_index([("container_id", 1), ("timestamp", -1)])
    await activities.create_index([("user_id", 1), ("timestamp", -1)])
    # TTL index - expire after 90 days
    await activities.create_index([("timestamp", 1)], expireAfterSeconds=7776000)


async def close_mongodb() -> None:
    """Close MongoDB connection."""
    global mongodb_client

    if mongodb_client:
        mongodb_client.close()


def get_mongodb() -> AsyncIOMotorDatabase:
    """Get MongoDB database instance."""
    if mongodb_database is None:
        raise RuntimeError("MongoDB is not initialized")
    return mongodb_database


def get_activities_collection():
    """Get activities collection."""
    return get_mongodb().activities
