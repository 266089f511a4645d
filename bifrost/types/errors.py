"""
Error types and error codes for Bifrost.
Provides structured error handling across the token backends.
"""

from enum import Enum
from typing import Dict, Any, List, Optional


class ErrorCode(str, Enum):
    """Standard error codes used across Bifrost."""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    TOKEN_EXPIRED = "token_expired"
    STORAGE_ERROR = "storage_error"
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"

    def __str__(self) -> str:
        return self.value


# Error code constants for easy import
INVALID_INPUT = ErrorCode.INVALID_INPUT
NOT_FOUND = ErrorCode.NOT_FOUND
TOKEN_EXPIRED = ErrorCode.TOKEN_EXPIRED
STORAGE_ERROR = ErrorCode.STORAGE_ERROR
CONFIGURATION_ERROR = ErrorCode.CONFIGURATION_ERROR
INTERNAL_ERROR = ErrorCode.INTERNAL_ERROR


class BifrostError(Exception):
    """Base exception for all Bifrost errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            'error': self.error_code.value,
            'message': self.message,
            'details': self.details
        }

        if self.cause:
            result['cause'] = str(self.cause)

        return result

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class DuplicateKeyError(BifrostError):
    """Raised when a token id is inserted twice."""

    def __init__(self, token_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("The token key already exists", INVALID_INPUT, details)
        self.token_id = token_id
        self.details['token_id'] = token_id


class TokenNotFoundError(BifrostError):
    """Raised when an operation requires a token that is not stored."""

    def __init__(self, token_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("The token was not found", NOT_FOUND, details)
        self.token_id = token_id
        self.details['token_id'] = token_id


class TokenExpiredError(BifrostError):
    """Raised when an expired token is used where a valid one is required."""

    def __init__(self, token_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("The token has expired", TOKEN_EXPIRED, details)
        self.token_id = token_id
        self.details['token_id'] = token_id


class StorageError(BifrostError):
    """
    Raised when the backing store cannot complete an operation.

    The driver exception is kept in ``cause`` and chained with ``raise ... from``.
    """

    def __init__(
        self,
        operation: str,
        message: str = "",
        key: str = "",
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            f"Storage error in {operation}: {message or cause}",
            STORAGE_ERROR,
            details,
            cause
        )
        self.operation = operation
        self.key = key
        self.details['operation'] = operation
        if key:
            self.details['key'] = key


class CascadeDeleteError(StorageError):
    """Raised after a cascade delete attempted every member but some failed."""

    def __init__(
        self,
        owner_id: str,
        failures: Dict[str, Exception],
    ):
        failed_ids: List[str] = sorted(failures)
        super().__init__(
            "delete_by_owner",
            f"{len(failed_ids)} token(s) of owner {owner_id} could not be deleted",
            key=owner_id,
            cause=next(iter(failures.values()), None),
            details={'failed_ids': failed_ids}
        )
        self.owner_id = owner_id
        self.failures = failures


class ConfigurationError(BifrostError):
    """Raised when there's a configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, CONFIGURATION_ERROR, details)
        self.config_key = config_key
        self.config_value = config_value

        if config_key:
            self.details['config_key'] = config_key
        if config_value is not None:
            self.details['config_value'] = str(config_value)
