"""
app/services/user_store.py

Purpose: Store adapter for the users collection

- insert_many / bulk_write / find / count_documents / find_by_id
- Always unordered bulk calls: one failing item never stops the rest
- Translates pymongo / bson errors into the failure taxonomy
  (the only place driver error codes are looked at)
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from app.core.exceptions import (
    FailureKind,
    ItemFailure,
    StoreFailure,
    DuplicateKeyFailure,
    CastFailure,
)
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_users_collection
from app.services.bulk_operations import BulkOperation

logger = get_logger(__name__)

DUPLICATE_KEY_CODES = (11000, 11001)
DOCUMENT_VALIDATION_CODE = 121

# e.g. "E11000 duplicate key error collection: db.users index: email_unique dup key: ..."
INDEX_NAME_PATTERN = re.compile(r"index: (\w+?)(?:_unique|_1)?\s")


@dataclass
class InsertOutcome:
    """Result of insert_many: the documents stored and the ones rejected."""
    inserted: List[dict] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)


@dataclass
class WriteOutcome:
    """Aggregate counts of bulk_write plus per-operation failures."""
    matched: int = 0
    modified: int = 0
    upserted: int = 0
    deleted: int = 0
    inserted: int = 0
    failures: List[ItemFailure] = field(default_factory=list)
    write_errors: List[dict] = field(default_factory=list)

    def counts(self) -> dict:
        return {
            "matched": self.matched,
            "modified": self.modified,
            "upserted": self.upserted,
            "deletedCount": self.deleted,
            "insertedCount": self.inserted,
        }


def duplicate_field(error: dict) -> str:
    """
    Name of the field whose unique index was violated.
    """
    for key in ("keyPattern", "keyValue"):
        if error.get(key):
            return next(iter(error[key]))

    match = INDEX_NAME_PATTERN.search(error.get("errmsg", ""))
    return match.group(1) if match else "Field"


def classify_write_error(error: dict) -> Tuple[FailureKind, Optional[str]]:
    code = error.get("code")
    if code in DUPLICATE_KEY_CODES:
        return FailureKind.DUPLICATE_KEY, duplicate_field(error)
    if code == DOCUMENT_VALIDATION_CODE:
        return FailureKind.VALIDATION, None
    return FailureKind.STORE, None


def to_item_failure(error: dict) -> ItemFailure:
    kind, field_name = classify_write_error(error)
    return ItemFailure(
        index=error.get("index", -1),
        kind=kind,
        message=error.get("errmsg", "Write failed"),
        field=field_name,
    )


def write_concern_failures(details: dict) -> List[ItemFailure]:
    """
    Write concern errors are not tied to one operation, so they carry index -1.
    """
    return [
        ItemFailure(
            index=-1,
            kind=FailureKind.STORE,
            message=error.get("errmsg", "Write concern error"),
        )
        for error in details.get("writeConcernErrors", [])
    ]


def translate_error(e: PyMongoError) -> Exception:
    """Maps a non-bulk driver error to the failure taxonomy."""
    if isinstance(e, DuplicateKeyError):
        return DuplicateKeyFailure(duplicate_field(e.details or {}), details=e.details)
    return StoreFailure(str(e))


class UserStore:
    """
    Thin async adapter over the users collection.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def insert_many(self, documents: List[dict]) -> InsertOutcome:
        """
        Inserts every document it can (ordered=False).

        Failure indexes refer to positions in `documents`. Stored documents
        get their `_id` assigned in place.
        """
        if not documents:
            return InsertOutcome()

        try:
            await self.collection.insert_many(documents, ordered=False)
        except BulkWriteError as e:
            errors = e.details.get("writeErrors", [])
            failed = {error["index"] for error in errors}
            with LogContext(operation="insert_many", batch_size=len(documents)):
                logger.warning(f"insert_many partially failed: {len(errors)} of {len(documents)}")
            return InsertOutcome(
                inserted=[doc for i, doc in enumerate(documents) if i not in failed],
                failures=[to_item_failure(error) for error in errors] + write_concern_failures(e.details),
            )
        except PyMongoError as e:
            raise translate_error(e) from e

        return InsertOutcome(inserted=list(documents))

    async def bulk_write(self, operations: List[BulkOperation]) -> WriteOutcome:
        """
        Executes the operations as one unordered batch.
        """
        requests = [operation.to_request() for operation in operations]

        try:
            result = await self.collection.bulk_write(requests, ordered=False)
        except BulkWriteError as e:
            details = e.details
            errors = details.get("writeErrors", [])
            with LogContext(operation="bulk_write", batch_size=len(requests)):
                logger.warning(f"bulk_write partially failed: {len(errors)} of {len(requests)}")
            return WriteOutcome(
                matched=details.get("nMatched", 0),
                modified=details.get("nModified", 0),
                upserted=details.get("nUpserted", 0),
                deleted=details.get("nRemoved", 0),
                inserted=details.get("nInserted", 0),
                failures=[to_item_failure(error) for error in errors] + write_concern_failures(details),
                write_errors=errors + details.get("writeConcernErrors", []),
            )
        except PyMongoError as e:
            raise translate_error(e) from e

        return WriteOutcome(
            matched=result.matched_count,
            modified=result.modified_count,
            upserted=result.upserted_count,
            deleted=result.deleted_count,
            inserted=result.inserted_count,
        )

    async def find(self, skip: int, limit: int) -> List[dict]:
        """A page of users in creation order."""
        try:
            cursor = self.collection.find({}).sort("_id", ASCENDING).skip(skip).limit(limit)
            return await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise translate_error(e) from e

    async def count_documents(self) -> int:
        try:
            return await self.collection.count_documents({})
        except PyMongoError as e:
            raise translate_error(e) from e

    async def find_by_id(self, user_id: str) -> Optional[dict]:
        """
        Looks up one user.

        Returns:
            The document, or None when no user has this id

        Raises:
            CastFailure: If user_id is not a valid ObjectId
        """
        if not ObjectId.is_valid(user_id):
            raise CastFailure(user_id)

        try:
            return await self.collection.find_one({"_id": ObjectId(user_id)})
        except PyMongoError as e:
            raise translate_error(e) from e


def get_user_store() -> UserStore:
    """
    FastAPI dependency returning the store for the shared connection.
    """
    return UserStore(get_users_collection())
