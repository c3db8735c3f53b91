"""
app/schemas/user.py

Purpose: User record schema

- Field presence, type and constraint checks for a candidate user
- Normalization (trimmed name, lowercased email)
- Client-facing messages for every field error
- Uniqueness is NOT checked here; the unique indexes enforce it
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Optional, Any, List

from app.core.exceptions import ValidationFailure
from utils.constants import (
    KycStatus,
    DeviceType,
    OperatingSystem,
    DEFAULT_ROLE,
    FULL_NAME_REQUIRED,
    FULL_NAME_TOO_SHORT,
    EMAIL_REQUIRED,
    EMAIL_INVALID,
    PASSWORD_REQUIRED,
    PHONE_REQUIRED,
    PHONE_INVALID,
    WALLET_NEGATIVE,
)
from utils.validation_utils import is_valid_email, is_valid_phone


REQUIRED_MESSAGES = {
    "fullName": FULL_NAME_REQUIRED,
    "email": EMAIL_REQUIRED,
    "password": PASSWORD_REQUIRED,
    "phone": PHONE_REQUIRED,
}


class DeviceInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, use_enum_values=True)

    ip_address: Optional[str] = Field(default=None, alias="ipAddress")
    device_type: Optional[DeviceType] = Field(default=None, alias="deviceType")
    os: Optional[OperatingSystem] = None


class UserCreate(BaseModel):
    """
    A validated, normalized user ready to be stored.

    Unknown keys are dropped, as are client-supplied _id and timestamps.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, use_enum_values=True, validate_default=True)

    full_name: str = Field(alias="fullName")
    email: str
    password: str
    role: str = DEFAULT_ROLE
    phone: str
    wallet_balance: float = Field(default=0, alias="walletBalance")
    is_blocked: bool = Field(default=False, alias="isBlocked")
    kyc_status: KycStatus = Field(default=KycStatus.PENDING, alias="kycStatus")
    device_info: Optional[DeviceInfo] = Field(default=None, alias="deviceInfo")

    @field_validator("full_name", "email", "password", "phone", mode="before")
    @classmethod
    def require_value(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            alias = cls.model_fields[info.field_name].alias or info.field_name
            raise ValueError(REQUIRED_MESSAGES[alias])
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def phone_number_as_text(cls, v):
        # 9876543210 sent as a JSON number is still a phone number
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError(FULL_NAME_TOO_SHORT)
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.lower()
        if not is_valid_email(v):
            raise ValueError(EMAIL_INVALID)
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if not is_valid_phone(v):
            raise ValueError(PHONE_INVALID)
        return v

    @field_validator("wallet_balance")
    @classmethod
    def validate_wallet_balance(cls, v):
        if v < 0:
            raise ValueError(WALLET_NEGATIVE)
        return v

    def to_document(self, now: datetime) -> dict:
        """Stored form: camelCase keys, unset optionals omitted, both timestamps = now."""
        document = self.model_dump(by_alias=True, exclude_none=True)
        document["createdAt"] = now
        document["updatedAt"] = now
        return document


def _error_message(error: dict) -> str:
    loc = error.get("loc") or ()
    path = ".".join(str(part) for part in loc)
    error_type = error.get("type")

    if not path:
        return "Each user must be a JSON object"
    if error_type == "missing":
        return REQUIRED_MESSAGES.get(path, f"Path `{path}` is required.")
    if error_type == "value_error":
        return str(error["ctx"]["error"])
    if error_type == "enum":
        return f"`{error.get('input')}` is not a valid enum value for path `{path}`."
    return f"Cast failed for value `{error.get('input')}` at path `{path}`: {error.get('msg')}"


def collect_messages(exc: PydanticValidationError) -> List[str]:
    """
    Turns a pydantic error into the list of client-facing field messages.
    """
    return [_error_message(error) for error in exc.errors()]


def validate_user(candidate: Any) -> UserCreate:
    """
    Validates one candidate record.

    Args:
        candidate: Untyped JSON value from the request body

    Returns:
        Normalized UserCreate

    Raises:
        ValidationFailure: with every field message when invalid
    """
    try:
        return UserCreate.model_validate(candidate)
    except PydanticValidationError as e:
        raise ValidationFailure(collect_messages(e)) from e
