"""
app/core/errors.py

Purpose: Error classifier

- Maps each failure kind to a status code and the JSON error envelope
- Unmatched routes answer 404 "Route not found"
- Nothing leaves the service as a raw, untranslated error
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import FailureKind, UserServiceError
from app.core.logging import get_logger
from app.schemas.response import error_response
from utils.constants import INVALID_ID, ROUTE_NOT_FOUND, INTERNAL_ERROR

logger = get_logger(__name__)


def classify(exc: UserServiceError):
    """
    Builds the error response for a typed failure.
    """
    if exc.kind == FailureKind.VALIDATION:
        return error_response(400, exc.message, errors=exc.details or [])

    if exc.kind == FailureKind.DUPLICATE_KEY:
        return error_response(409, exc.message)

    if exc.kind == FailureKind.CAST:
        return error_response(400, INVALID_ID)

    if exc.kind == FailureKind.PARTIAL_BATCH:
        return error_response(
            207,
            exc.message,
            errors=[failure.to_dict() for failure in exc.failures],
        )

    return error_response(exc.status_code or 500, exc.message or INTERNAL_ERROR)


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(UserServiceError)
    async def user_service_exception_handler(request: Request, exc: UserServiceError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"{exc.kind.value}: {exc.message}",
            extra={"method": request.method, "path": request.url.path}
        )
        return classify(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles routing errors and explicit HTTPExceptions.

        A known path with the wrong method is an unmatched route too.
        """
        if exc.status_code in (404, 405):
            return error_response(404, ROUTE_NOT_FOUND)
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Handles FastAPI request parameter validation errors.
        """
        messages = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        ]
        return error_response(400, "Validation error", errors=messages)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "path": request.url.path,
            },
            exc_info=True
        )

        message = INTERNAL_ERROR if settings.is_production else (str(exc) or INTERNAL_ERROR)
        return error_response(500, message)
