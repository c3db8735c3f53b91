"""
app/schemas/response.py

Purpose: Response envelopes

- Every success body is {success: true, statusCode, data|message, ...}
- Every error body is {success: false, statusCode, message, ...}
- Mongo documents are made JSON-safe (ObjectId -> str, datetime -> ISO)
"""

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from typing import Optional, Any


class SuccessResponse(BaseModel):
    """
    Standard success response structure.
    """
    model_config = ConfigDict(extra="allow")

    success: bool = True
    statusCode: int
    message: Optional[str] = None
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    model_config = ConfigDict(extra="allow")

    success: bool = False
    statusCode: int
    message: str


def to_jsonable(value: Any) -> Any:
    """Encode documents, lists of documents and counts for a JSON body."""
    return jsonable_encoder(value, custom_encoder={ObjectId: str})


def success_response(status_code: int, data: Any = None, message: Optional[str] = None, **extra) -> JSONResponse:
    body = SuccessResponse(
        statusCode=status_code,
        message=message,
        data=to_jsonable(data),
        **to_jsonable(extra),
    ).model_dump()
    # message and data are each optional in the envelope
    for key in ("message", "data"):
        if body[key] is None:
            del body[key]
    return JSONResponse(status_code=status_code, content=body)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    body = ErrorResponse(statusCode=status_code, message=message, **to_jsonable(extra))
    return JSONResponse(status_code=status_code, content=body.model_dump())
