"""
Common package providing shared utilities for Bifrost.
"""

from .utils import (
    generate_id,
    get_current_time,
    ensure_utc,
    format_datetime,
    parse_datetime,
)

from .locks import ReadWriteLock

__all__ = [
    'generate_id',
    'get_current_time',
    'ensure_utc',
    'format_datetime',
    'parse_datetime',
    'ReadWriteLock',
]
