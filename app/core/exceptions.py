"""
app/core/exceptions.py

Purpose: Failure taxonomy

- One exception class per failure kind surfaced by the store layer
- Each failure carries an explicit FailureKind instead of driver error fields
- Per-item outcomes for partial batch failures
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Any, List


class FailureKind(str, Enum):
    VALIDATION = "VALIDATION_ERROR"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    CAST = "CAST_ERROR"
    PARTIAL_BATCH = "PARTIAL_BATCH"
    STORE = "STORE_ERROR"


@dataclass
class ItemFailure:
    """
    Why a single record or operation in a batch failed.

    index is the position in the client's original array.
    """
    index: int
    kind: FailureKind
    message: str
    field: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


class UserServiceError(Exception):
    """
    Base exception for the user service.
    """
    kind = FailureKind.STORE

    def __init__(self, message: str = "Internal server error", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class StoreFailure(UserServiceError):
    """
    Raised for any store error that has no more specific kind.
    """
    kind = FailureKind.STORE


class ValidationFailure(UserServiceError):
    """
    Raised when a record or request body breaks field constraints.
    `errors` is the list of field-level messages.
    """
    kind = FailureKind.VALIDATION

    def __init__(self, errors: List[str], message: str = "Validation error"):
        self.errors = list(errors)
        super().__init__(message, status_code=400, details=self.errors)


class DuplicateKeyFailure(UserServiceError):
    """
    Raised when a unique index rejects a write.
    """
    kind = FailureKind.DUPLICATE_KEY

    def __init__(self, field: str, details: Optional[Any] = None):
        self.field = field
        super().__init__(f"{field} already exists", status_code=409, details=details)


class CastFailure(UserServiceError):
    """
    Raised when an identifier or value cannot be cast to the stored type.
    """
    kind = FailureKind.CAST

    def __init__(self, value: Any = None, message: str = "Invalid ID format"):
        self.value = value
        super().__init__(message, status_code=400)


class PartialBatchFailure(UserServiceError):
    """
    Raised by the store adapter when some items of a batch failed.

    `outcome` is the InsertOutcome or WriteOutcome of the batch; the
    successful items in it were committed.
    """
    kind = FailureKind.PARTIAL_BATCH

    def __init__(self, outcome: Any, message: str = "Partial bulk operation - some items failed"):
        self.outcome = outcome
        super().__init__(message, status_code=207)

    @property
    def failures(self) -> List[ItemFailure]:
        return self.outcome.failures
