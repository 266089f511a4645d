"""
Common utilities and helper functions for Bifrost.
"""

import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier with optional prefix."""
    unique_id = str(uuid.uuid4())
    return f"{prefix}{unique_id}" if prefix else unique_id


def get_current_time() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.

    Document stores hand back naive datetimes unless told otherwise, so
    every timestamp read from storage goes through here.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_datetime(dt: datetime) -> str:
    """Format datetime as ISO 8601 string."""
    return dt.isoformat()


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 string into a UTC datetime."""
    return ensure_utc(datetime.fromisoformat(value))
