"""
app/services/user_service.py

Purpose: User request orchestration

- Bulk create: per-record schema validation, then one unordered insert
- Bulk update: translate operations, then one unordered bulk write
- Paginated listing and single lookup
- Raises PartialBatchFailure when any item of a batch failed
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from app.core.exceptions import (
    FailureKind,
    ItemFailure,
    ValidationFailure,
    DuplicateKeyFailure,
    PartialBatchFailure,
    StoreFailure,
)
from app.core.logging import get_logger, LogContext
from app.schemas.user import validate_user
from app.services.bulk_operations import translate_operations
from app.services.user_store import UserStore, InsertOutcome, WriteOutcome
from utils.constants import PARTIAL_CREATE, PARTIAL_UPDATE
from utils.time_utils import utc_now

logger = get_logger(__name__)


def _single_failure(failure: ItemFailure) -> Exception:
    """Exception a lone failed record is reported as."""
    if failure.kind == FailureKind.DUPLICATE_KEY:
        return DuplicateKeyFailure(failure.field or "Field")
    if failure.kind == FailureKind.VALIDATION:
        return ValidationFailure([failure.message])
    return StoreFailure(failure.message)


async def bulk_create_users(store: UserStore, records: List[Any]) -> InsertOutcome:
    """
    Validates and inserts a batch of users.

    Records failing the schema never reach the store. Every failure index
    is the record's position in `records`.

    Args:
        store: Store adapter
        records: Candidate user objects

    Returns:
        InsertOutcome with every record inserted

    Raises:
        ValidationFailure / DuplicateKeyFailure: a single-record batch failed
        PartialBatchFailure: some records of a larger batch failed
    """
    with LogContext(operation="bulk_create", batch_size=len(records)):
        now = utc_now()
        documents = []
        positions = []
        failures: List[ItemFailure] = []

        for index, candidate in enumerate(records):
            try:
                user = validate_user(candidate)
            except ValidationFailure as e:
                if len(records) == 1:
                    raise
                failures.append(ItemFailure(
                    index=index,
                    kind=FailureKind.VALIDATION,
                    message=", ".join(e.errors),
                ))
                continue
            documents.append(user.to_document(now))
            positions.append(index)

        outcome = await store.insert_many(documents)

        for failure in outcome.failures:
            if 0 <= failure.index < len(positions):
                failure.index = positions[failure.index]
        failures.extend(outcome.failures)
        failures.sort(key=lambda f: f.index)

        result = InsertOutcome(inserted=outcome.inserted, failures=failures)

        if failures:
            if len(records) == 1:
                raise _single_failure(failures[0])
            logger.warning(f"Bulk create: {len(result.inserted)} inserted, {len(failures)} failed")
            raise PartialBatchFailure(result, message=PARTIAL_CREATE)

        logger.info(f"Bulk create: {len(result.inserted)} users inserted")
        return result


async def bulk_update_users(store: UserStore, items: List[Any]) -> WriteOutcome:
    """
    Translates and executes a batch of update operations.

    Raises:
        ValidationFailure: an item is not a recognised operation
        PartialBatchFailure: some operations failed in the store
    """
    with LogContext(operation="bulk_update", batch_size=len(items)):
        operations = translate_operations(items, now=utc_now())
        outcome = await store.bulk_write(operations)

        if outcome.failures:
            logger.warning(f"Bulk update: {len(outcome.failures)} of {len(operations)} operations failed")
            raise PartialBatchFailure(outcome, message=PARTIAL_UPDATE)

        logger.info(
            f"Bulk update: matched={outcome.matched} modified={outcome.modified}"
        )
        return outcome


async def list_users(store: UserStore, page: int, limit: int) -> Tuple[List[dict], Dict[str, int]]:
    """
    Returns one page of users and the pagination metadata.
    """
    skip = (page - 1) * limit

    users = await store.find(skip=skip, limit=limit)
    total = await store.count_documents()

    pagination = {
        "currentPage": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit),
    }
    return users, pagination


async def get_user(store: UserStore, user_id: str) -> Optional[dict]:
    """
    Returns the user or None. A malformed id raises CastFailure.
    """
    return await store.find_by_id(user_id)
