"""
Package types provides the shared error taxonomy for Bifrost.
"""

from .errors import (
    ErrorCode,
    BifrostError,
    DuplicateKeyError,
    TokenNotFoundError,
    TokenExpiredError,
    StorageError,
    CascadeDeleteError,
    ConfigurationError,
)

__all__ = [
    'ErrorCode',
    'BifrostError',
    'DuplicateKeyError',
    'TokenNotFoundError',
    'TokenExpiredError',
    'StorageError',
    'CascadeDeleteError',
    'ConfigurationError',
]
