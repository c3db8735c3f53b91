"""
utils/constants.py

Purpose: Centralized static content

- Enumerated field values of the user record
- Client-facing messages
- Pagination defaults

(Prevents hardcoding across the codebase)
"""

from enum import Enum


# ============================================================
# USER RECORD ENUMS
# ============================================================

class KycStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class DeviceType(str, Enum):
    MOBILE = "Mobile"
    DESKTOP = "Desktop"
    UNSET = ""


class OperatingSystem(str, Enum):
    ANDROID = "Android"
    IOS = "iOS"
    WINDOWS = "Windows"
    MACOS = "macOS"
    UNSET = ""


DEFAULT_ROLE = "user"

USERS_COLLECTION = "users"

# Fields carrying a unique index
UNIQUE_FIELDS = ("email", "phone")


# ============================================================
# FIELD VALIDATION MESSAGES
# ============================================================

FULL_NAME_REQUIRED = "Full name is required"
FULL_NAME_TOO_SHORT = "Full name must be at least 3 characters"
EMAIL_REQUIRED = "Email is required"
EMAIL_INVALID = "Please provide a valid email address"
PASSWORD_REQUIRED = "Password is required"
PHONE_REQUIRED = "Phone number is required"
PHONE_INVALID = "Phone number must contain only digits and be at least 10 digits"
WALLET_NEGATIVE = "Wallet balance cannot be negative"


# ============================================================
# RESPONSE MESSAGES
# ============================================================

BODY_NOT_JSON = "Request body must be valid JSON"
CREATE_BODY_NOT_ARRAY = "Request body must be an array of user objects"
CREATE_BODY_EMPTY = "Array cannot be empty"
UPDATE_BODY_NOT_ARRAY = "Request body must be an array of update operations"
UPDATE_BODY_EMPTY = "Operations array cannot be empty"
PARTIAL_CREATE = "Partial bulk create - some documents failed"
PARTIAL_UPDATE = "Partial bulk update - some operations failed"
UPDATE_COMPLETED = "Bulk update completed successfully"
USER_NOT_FOUND = "User not found"
ROUTE_NOT_FOUND = "Route not found"
INVALID_ID = "Invalid ID format"
INTERNAL_ERROR = "Internal server error"


# ============================================================
# PAGINATION
# ============================================================

DEFAULT_PAGE = 1
MAX_PAGE = 1_000_000_000
