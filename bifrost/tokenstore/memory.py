"""
In-memory token storage implementation for Bifrost.

This module provides a thread-safe in-memory token store
suitable for development and single-instance deployments.
"""

import logging
from typing import Dict, List, Optional

from .store import TokenRepository, Token, get_current_time
from ..common.locks import ReadWriteLock
from ..types.errors import DuplicateKeyError, TokenNotFoundError


logger = logging.getLogger(__name__)


class MemoryTokenStore(TokenRepository):
    """
    In-memory token store implementation.

    Tokens live in a dictionary guarded by a reader/writer lock: lookups
    run concurrently, mutations run one at a time. Nothing survives a
    restart and expired tokens stay until deleted.
    """

    def __init__(self):
        self._store: Dict[str, Token] = {}
        self._lock = ReadWriteLock()

    def get(self, token_id: str) -> Optional[Token]:
        """Retrieve a token by id."""
        with self._lock.read_locked():
            token = self._store.get(token_id)
            return token.copy() if token else None

    def get_by_owner(self, owner_id: str) -> List[Token]:
        """Get all tokens for an owner."""
        with self._lock.read_locked():
            return [
                token.copy()
                for token in self._store.values()
                if token.owner_id == owner_id
            ]

    def insert(self, token: Token) -> None:
        """Store a new token."""
        with self._lock.write_locked():
            if token.id in self._store:
                raise DuplicateKeyError(token.id)
            token.issued_at = get_current_time()
            self._store[token.id] = token.copy()
            logger.debug(f"Stored token {token.id} for owner {token.owner_id}")

    def update(self, token: Token, refresh_ttl: bool = False) -> None:
        """Replace an existing token; unknown ids are rejected."""
        with self._lock.write_locked():
            if token.id not in self._store:
                raise TokenNotFoundError(token.id)
            self._store[token.id] = token.copy()
            logger.debug(f"Updated token {token.id}")

    def delete(self, token_id: str) -> None:
        """Remove a token from the store."""
        with self._lock.write_locked():
            if self._store.pop(token_id, None) is not None:
                logger.debug(f"Deleted token {token_id}")

    def delete_by_owner(self, owner_id: str) -> None:
        """Remove every token of an owner."""
        with self._lock.write_locked():
            doomed = [
                token_id
                for token_id, token in self._store.items()
                if token.owner_id == owner_id
            ]
            for token_id in doomed:
                del self._store[token_id]

            if doomed:
                logger.info(f"Deleted {len(doomed)} tokens for owner {owner_id}")

    def count_tokens(self) -> int:
        """Count total number of tokens."""
        with self._lock.read_locked():
            return len(self._store)

    def clear(self) -> int:
        """
        Clear all tokens from the store.

        Returns:
            Number of tokens cleared
        """
        with self._lock.write_locked():
            count = len(self._store)
            self._store.clear()
            logger.info(f"Cleared {count} tokens from memory store")
            return count


def create_memory_store() -> MemoryTokenStore:
    """Create a memory token store."""
    return MemoryTokenStore()
