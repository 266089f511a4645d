"""
Token types and the repository contract for Bifrost.

This module provides the token value object handed out by the gateway,
the collection wrapper used in API responses, and the abstract
repository every storage backend implements.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..common.utils import (
    generate_id,
    get_current_time,
    format_datetime,
    parse_datetime,
)


logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TIMEOUT = timedelta(minutes=60)


@dataclass
class Token:
    """
    A time-bounded grant issued to a consumer.

    ``id`` is the primary key in every backend and never changes.
    ``issued_at`` is owned by the repository and overwritten on insert.
    Validity is derived from ``expires_at`` on every call and is never stored.
    """

    id: str = field(default_factory=generate_id)
    owner_id: str = ""
    source: str = ""
    client_address: str = ""
    issued_at: datetime = field(default_factory=get_current_time)
    expires_at: datetime = field(default_factory=lambda: get_current_time() + DEFAULT_TOKEN_TIMEOUT)

    def is_valid(self) -> bool:
        """
        Check if token is currently valid.

        Returns:
            True while the current time is strictly before ``expires_at``
        """
        return get_current_time() < self.expires_at

    def renew(self, timeout: Optional[timedelta] = None) -> None:
        """
        Push the expiration to ``now + timeout``.

        The expiration never moves backwards, so renewing with a shorter
        timeout than the one the token was issued with is a no-op.
        Only the in-memory value changes; persist it with ``update``.

        Args:
            timeout: Lifetime granted from now (defaults to 60 minutes)
        """
        if timeout is None:
            timeout = DEFAULT_TOKEN_TIMEOUT
        renewed = get_current_time() + timeout
        if renewed > self.expires_at:
            self.expires_at = renewed

    @property
    def remaining_seconds(self) -> int:
        """Whole seconds until expiry; negative once expired."""
        return int((self.expires_at - get_current_time()).total_seconds())

    def time_until_expiry(self) -> timedelta:
        """Get time until token expires."""
        return self.expires_at - get_current_time()

    def copy(self) -> 'Token':
        """Return a detached copy of this token."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert token to dictionary.

        Returns:
            Dictionary with ISO timestamps and the derived ``expires_in``
        """
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'source': self.source,
            'client_address': self.client_address,
            'issued_at': format_datetime(self.issued_at),
            'expires_at': format_datetime(self.expires_at),
            'expires_in': self.remaining_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Token':
        """
        Create Token from dictionary.

        Derived fields such as ``expires_in`` are ignored.
        """
        issued_at = data['issued_at']
        expires_at = data['expires_at']
        if isinstance(issued_at, str):
            issued_at = parse_datetime(issued_at)
        if isinstance(expires_at, str):
            expires_at = parse_datetime(expires_at)

        return cls(
            id=data['id'],
            owner_id=data.get('owner_id', ''),
            source=data.get('source', ''),
            client_address=data.get('client_address', ''),
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def to_json(self) -> str:
        """Convert token to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> 'Token':
        """Create Token from JSON string."""
        return cls.from_dict(json.loads(json_str))


@dataclass
class TokenCollection:
    """A list of tokens with its count, as returned to API consumers."""

    tokens: List[Token] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.tokens)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'count': self.count,
            'tokens': [token.to_dict() for token in self.tokens],
        }


def new_token(owner_id: str,
              source: str = "",
              client_address: str = "",
              timeout: Optional[timedelta] = None) -> Token:
    """
    Create a new token for a consumer.

    Args:
        owner_id: Consumer the token is issued to
        source: Provenance tag (which credential flow produced it)
        client_address: Network address of the caller at issuance
        timeout: Token lifetime (defaults to 60 minutes)

    Returns:
        Token instance, not yet persisted
    """
    if timeout is None:
        timeout = DEFAULT_TOKEN_TIMEOUT
    now = get_current_time()

    return Token(
        id=generate_id(),
        owner_id=owner_id,
        source=source,
        client_address=client_address,
        issued_at=now,
        expires_at=now + timeout,
    )


class TokenRepository(ABC):
    """
    Abstract base class for token storage backends.

    Every backend answers "not found" with ``None`` or an empty list and
    reports transport failures as ``StorageError``. Backends never retry.
    """

    @abstractmethod
    def get(self, token_id: str) -> Optional[Token]:
        """
        Retrieve a token by id.

        Expired tokens are returned as-is; callers check ``is_valid``.

        Returns:
            Token if stored, None otherwise
        """

    @abstractmethod
    def get_by_owner(self, owner_id: str) -> List[Token]:
        """
        Retrieve every token issued to an owner.

        Returns:
            Possibly empty list of tokens, in no particular order
        """

    @abstractmethod
    def insert(self, token: Token) -> None:
        """
        Store a new token, stamping ``issued_at`` with the current time.

        Raises:
            DuplicateKeyError: If a token with the same id exists
            StorageError: If the backend is unavailable
        """

    @abstractmethod
    def update(self, token: Token, refresh_ttl: bool = False) -> None:
        """
        Replace the stored token with the same id.

        Args:
            token: Token to store
            refresh_ttl: Recompute the store's native expiration from
                ``expires_at`` (only backends with native expiry use it)
        """

    @abstractmethod
    def delete(self, token_id: str) -> None:
        """Remove a token. Deleting an unknown id is not an error."""

    @abstractmethod
    def delete_by_owner(self, owner_id: str) -> None:
        """Remove every token issued to an owner."""

    def close(self) -> None:
        """Release backend resources."""
