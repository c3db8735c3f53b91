"""
app/api/users.py

Purpose: User HTTP endpoints

- POST /bulk-create   insert one or many users
- PUT  /bulk-update   apply a batch of update operations
- GET  /              paginated listing
- GET  /{user_id}     single lookup
- Partial batch failures and not-found are answered here; everything else
  goes to the shared exception handlers
"""

from fastapi import APIRouter, Depends, Request
from typing import Any, Optional

from app.core.config import settings
from app.core.exceptions import ValidationFailure, PartialBatchFailure
from app.core.logging import get_logger
from app.schemas.response import success_response, error_response
from app.services.user_store import UserStore, get_user_store
from app.services import user_service
from utils.constants import (
    BODY_NOT_JSON,
    CREATE_BODY_NOT_ARRAY,
    CREATE_BODY_EMPTY,
    UPDATE_BODY_NOT_ARRAY,
    UPDATE_BODY_EMPTY,
    UPDATE_COMPLETED,
    USER_NOT_FOUND,
    DEFAULT_PAGE,
)
from utils.validation_utils import normalize_page, normalize_limit

logger = get_logger(__name__)
router = APIRouter()


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationFailure([BODY_NOT_JSON], message=BODY_NOT_JSON)


@router.post("/bulk-create")
async def bulk_create(request: Request, store: UserStore = Depends(get_user_store)):
    """
    Creates users from a JSON array (or a single object).

    201 when every user was stored, 207 when some were rejected.
    """
    body = await read_json_body(request)

    if isinstance(body, dict):
        body = [body]
    if not isinstance(body, list):
        return error_response(400, CREATE_BODY_NOT_ARRAY)
    if not body:
        return error_response(400, CREATE_BODY_EMPTY)

    try:
        outcome = await user_service.bulk_create_users(store, body)
    except PartialBatchFailure as e:
        inserted = e.outcome.inserted
        return error_response(
            207,
            e.message,
            insertedCount=len(inserted),
            failedCount=len(e.failures),
            insertedDocs=inserted,
            errors=[{"index": f.index, "errmsg": f.message} for f in e.failures],
        )

    created = outcome.inserted
    return success_response(
        201,
        data=created,
        message=f"Successfully created {len(created)} users",
        count=len(created),
    )


@router.put("/bulk-update")
async def bulk_update(request: Request, store: UserStore = Depends(get_user_store)):
    """
    Applies updateOne / updateMany (and raw insert/replace/delete) operations.

    200 with aggregate counts, 207 when some operations failed.
    """
    operations = await read_json_body(request)

    if not isinstance(operations, list):
        return error_response(400, UPDATE_BODY_NOT_ARRAY)
    if not operations:
        return error_response(400, UPDATE_BODY_EMPTY)

    try:
        outcome = await user_service.bulk_update_users(store, operations)
    except PartialBatchFailure as e:
        return error_response(
            207,
            e.message,
            data=e.outcome.counts(),
            errors=e.outcome.write_errors,
        )

    return success_response(200, data=outcome.counts(), message=UPDATE_COMPLETED)


@router.get("")
@router.get("/", include_in_schema=False)
async def list_users(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    store: UserStore = Depends(get_user_store),
):
    """Paginated users, default page 1 of 10."""
    page_number = normalize_page(page, default=DEFAULT_PAGE)
    page_size = normalize_limit(
        limit,
        default=settings.DEFAULT_PAGE_LIMIT,
        maximum=settings.MAX_PAGE_LIMIT,
    )

    users, pagination = await user_service.list_users(store, page_number, page_size)
    return success_response(200, data=users, pagination=pagination)


@router.get("/{user_id}")
async def get_user(user_id: str, store: UserStore = Depends(get_user_store)):
    user = await user_service.get_user(store, user_id)

    if user is None:
        logger.info(f"User not found: {user_id}")
        return error_response(404, USER_NOT_FOUND)

    return success_response(200, data=user)
