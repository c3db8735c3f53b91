"""
app/db/mongo.py

Purpose: MongoDB connection setup

- Initializes the process-wide Motor client with connection pooling
- Single collection: users
- Connection failure at startup is fatal (no retry)
- Proper connection lifecycle management
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError, ConfigurationError
from typing import Optional
from app.core.config import settings
from app.core.logging import get_logger
from utils.constants import USERS_COLLECTION

logger = get_logger(__name__)

# Global MongoDB client
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo():
    """
    Establishes the connection to MongoDB.
    Called once during application startup.

    Raises:
        ConnectionError: If MongoDB cannot be reached
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    logger.info(f"Connecting to MongoDB database: {settings.database_name}")

    try:
        _client = AsyncIOMotorClient(
            settings.MONGODB_URI,
            maxPoolSize=50,
            serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            tz_aware=True,
        )
        _database = _client[settings.database_name]

        # Verify connection
        await _client.admin.command("ping")

    except (ConnectionFailure, ServerSelectionTimeoutError, ConfigurationError) as e:
        logger.critical(f"MongoDB connection error: {e}")
        if _client is not None:
            _client.close()
        _client = None
        _database = None
        raise ConnectionError("Could not establish MongoDB connection") from e

    logger.info(f"✅ Successfully connected to MongoDB: {settings.database_name}")


async def close_mongo_connection():
    """
    Closes the MongoDB connection.
    Called during application shutdown.
    """
    global _client, _database

    if _client:
        logger.info("Closing MongoDB connection")
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    Checks if the database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    if _client is None:
        logger.error("MongoDB client not initialized")
        return False

    try:
        await _client.admin.command("ping")
        return True
    except (ConnectionFailure, ServerSelectionTimeoutError) as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


def get_database() -> AsyncIOMotorDatabase:
    """
    Returns the MongoDB database instance.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _database is None:
        raise RuntimeError(
            "Database not initialized. Call connect_to_mongo() during startup."
        )
    return _database


def get_users_collection() -> AsyncIOMotorCollection:
    """
    Returns the users collection.
    """
    return get_database()[USERS_COLLECTION]
