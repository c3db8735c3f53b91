"""
app/db/indexes.py

Purpose: Database index and validator management

- Unique indexes on users.email and users.phone
- $jsonSchema validator on the users collection
- Idempotent: safe to run on every startup
"""

from pymongo import ASCENDING
from pymongo.errors import CollectionInvalid, OperationFailure

from app.db.mongo import get_database, get_users_collection
from app.core.logging import get_logger
from app.models.user import USER_VALIDATOR
from utils.constants import USERS_COLLECTION, UNIQUE_FIELDS

logger = get_logger(__name__)


async def apply_user_validator():
    """
    Creates the users collection with its validator, or updates the
    validator of an existing collection.
    """
    db = get_database()

    try:
        await db.create_collection(USERS_COLLECTION, validator=USER_VALIDATOR)
        logger.info("Created users collection with schema validator")
    except CollectionInvalid:
        await db.command(
            "collMod",
            USERS_COLLECTION,
            validator=USER_VALIDATOR,
            validationLevel="moderate",
            validationAction="error",
        )
        logger.debug("Updated schema validator on existing users collection")


async def create_indexes():
    """
    Creates the unique indexes backing the email/phone invariants.
    """
    try:
        await apply_user_validator()

        users = get_users_collection()

        for field in UNIQUE_FIELDS:
            await users.create_index(
                [(field, ASCENDING)],
                unique=True,
                name=f"{field}_unique"
            )
            logger.debug(f"Created unique index on users.{field}")

        user_indexes = await users.index_information()
        logger.info(f"✅ Users indexes ready: {sorted(user_indexes)}")

    except OperationFailure as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this module directly to create indexes manually:
        python -m app.db.indexes
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
