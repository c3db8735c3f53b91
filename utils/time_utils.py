"""
utils/time_utils.py

Purpose: Time helpers

- Server-side timestamps for createdAt / updatedAt
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Current UTC time truncated to milliseconds, the precision MongoDB stores.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)
