"""
Redis token storage implementation for Bifrost.

Each token is stored as JSON under ``token:id:<id>`` with a native
expiry matching the token's remaining lifetime, so Redis reclaims
expired tokens on its own. Redis has no secondary indexes, so the ids
belonging to an owner are kept in a set under ``token:consumer:<owner>``.

The record write and the index write are separate commands. A crash in
between leaves an index entry without a record; readers skip such
entries instead of failing.
"""

import logging
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import RedisError

from .store import TokenRepository, Token, get_current_time
from ..types.errors import CascadeDeleteError, DuplicateKeyError, StorageError


logger = logging.getLogger(__name__)


class RedisConfig:
    """Configuration for the Redis token store."""

    def __init__(self,
                 address: str = "localhost:6379",
                 password: Optional[str] = None,
                 db: int = 0,
                 ssl: bool = False,
                 url: Optional[str] = None,
                 key_prefix: str = "",
                 socket_timeout: Optional[float] = None,
                 connection_pool_kwargs: Dict[str, Any] = None):
        """
        Initialize Redis configuration.

        Args:
            address: Redis address (host:port)
            password: Redis password
            db: Redis database number
            ssl: Enable SSL connection
            url: Redis URL, takes precedence over address/password/db
            key_prefix: Prefix prepended to every key
            socket_timeout: Socket timeout in seconds
            connection_pool_kwargs: Additional connection arguments
        """
        self.address = address
        self.password = password
        self.db = db
        self.ssl = ssl
        self.url = url
        self.key_prefix = key_prefix
        self.socket_timeout = socket_timeout
        self.connection_pool_kwargs = connection_pool_kwargs or {}

    def create_client(self) -> redis.Redis:
        """Build a redis client from these settings."""
        if self.url:
            return redis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=self.socket_timeout,
                **self.connection_pool_kwargs
            )

        host, _, port = self.address.partition(":")
        return redis.Redis(
            host=host or "localhost",
            port=int(port or 6379),
            password=self.password,
            db=self.db,
            ssl=self.ssl,
            socket_timeout=self.socket_timeout,
            decode_responses=True,
            **self.connection_pool_kwargs
        )


class RedisTokenStore(TokenRepository):
    """
    Redis-based token store with a hand-maintained owner index.

    ``update`` overwrites unconditionally and creates missing records.
    ``delete`` only removes the record; the owner index is scrubbed by
    ``delete_by_owner``.
    """

    def __init__(self,
                 config: Optional[RedisConfig] = None,
                 redis_client: Any = None):
        """
        Initialize the Redis token store.

        Args:
            config: Redis configuration
            redis_client: Redis client instance; built from config if omitted
        """
        self.config = config or RedisConfig()
        self._redis = redis_client if redis_client is not None else self.config.create_client()

    def _token_key(self, token_id: str) -> str:
        """Get Redis key for a token record."""
        return f"{self.config.key_prefix}token:id:{token_id}"

    def _owner_key(self, owner_id: str) -> str:
        """Get Redis key for an owner's token set."""
        return f"{self.config.key_prefix}token:consumer:{owner_id}"

    @staticmethod
    def _decode(value) -> str:
        # Set members arrive as bytes on clients without decode_responses.
        return value.decode() if isinstance(value, bytes) else value

    @staticmethod
    def _ttl_ms(token: Token) -> int:
        # PX must be positive; an already expired token lives for 1 ms.
        return max(int(token.time_until_expiry().total_seconds() * 1000), 1)

    def get(self, token_id: str) -> Optional[Token]:
        """Retrieve a token by id."""
        key = self._token_key(token_id)
        try:
            value = self._redis.get(key)
        except RedisError as e:
            logger.error(f"Failed to get token {token_id}: {e}")
            raise StorageError("get", key=key, cause=e) from e

        if value is None:
            return None

        try:
            return Token.from_json(value)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Corrupt token record at {key}: {e}")
            raise StorageError("get", message="corrupt token record", key=key, cause=e) from e

    def get_by_owner(self, owner_id: str) -> List[Token]:
        """Get all tokens for an owner, skipping index entries without a record."""
        owner_key = self._owner_key(owner_id)
        try:
            token_ids = self._redis.smembers(owner_key)
        except RedisError as e:
            logger.error(f"Failed to read index for owner {owner_id}: {e}")
            raise StorageError("get_by_owner", key=owner_key, cause=e) from e

        tokens = []
        for token_id in map(self._decode, token_ids):
            token = self.get(token_id)
            if token is None:
                logger.debug(f"Skipping index entry {token_id} of owner {owner_id} with no record")
                continue
            tokens.append(token)
        return tokens

    def insert(self, token: Token) -> None:
        """Store a new token and add it to its owner's index."""
        token.issued_at = get_current_time()
        key = self._token_key(token.id)
        value = token.to_json()

        try:
            created = self._redis.set(key, value, px=self._ttl_ms(token), nx=True)
        except RedisError as e:
            logger.error(f"Failed to store token {token.id}: {e}")
            raise StorageError("insert", key=key, cause=e) from e

        if not created:
            raise DuplicateKeyError(token.id)

        owner_key = self._owner_key(token.owner_id)
        try:
            self._redis.sadd(owner_key, token.id)
        except RedisError as e:
            logger.error(f"Stored token {token.id} but failed to index it: {e}")
            raise StorageError("insert", key=owner_key, cause=e) from e

        logger.debug(f"Stored token {token.id} for owner {token.owner_id}")

    def update(self, token: Token, refresh_ttl: bool = False) -> None:
        """
        Overwrite the token record.

        Without ``refresh_ttl`` the record keeps its current expiry even if
        ``expires_at`` moved; renewals must pass ``refresh_ttl=True``.
        A missing id is created with an expiry from ``expires_at`` and
        added to its owner's index.
        """
        key = self._token_key(token.id)
        value = token.to_json()
        try:
            if refresh_ttl:
                replaced = self._redis.set(key, value, px=self._ttl_ms(token), xx=True)
            else:
                replaced = self._redis.set(key, value, keepttl=True, xx=True)
            if not replaced:
                self._redis.set(key, value, px=self._ttl_ms(token))
                self._redis.sadd(self._owner_key(token.owner_id), token.id)
        except RedisError as e:
            logger.error(f"Failed to update token {token.id}: {e}")
            raise StorageError("update", key=key, cause=e) from e

        if replaced:
            logger.debug(f"Updated token {token.id}")
        else:
            logger.debug(f"Created token {token.id} on update")

    def delete(self, token_id: str) -> None:
        """Remove a token record; the owner index is left untouched."""
        key = self._token_key(token_id)
        try:
            self._redis.delete(key)
        except RedisError as e:
            logger.error(f"Failed to delete token {token_id}: {e}")
            raise StorageError("delete", key=key, cause=e) from e

    def delete_by_owner(self, owner_id: str) -> None:
        """
        Remove every token of an owner, then the owner's index.

        Individual record failures do not stop the cascade: every member is
        attempted and the index key is always removed before the collected
        failures are raised.

        Raises:
            CascadeDeleteError: If any record could not be deleted
            StorageError: If the index cannot be read or removed
        """
        owner_key = self._owner_key(owner_id)
        try:
            token_ids = self._redis.smembers(owner_key)
        except RedisError as e:
            logger.error(f"Failed to read index for owner {owner_id}: {e}")
            raise StorageError("delete_by_owner", key=owner_key, cause=e) from e

        failures: Dict[str, Exception] = {}
        for token_id in map(self._decode, token_ids):
            try:
                self.delete(token_id)
            except StorageError as e:
                failures[token_id] = e

        try:
            self._redis.delete(owner_key)
        except RedisError as e:
            logger.error(f"Failed to delete index for owner {owner_id}: {e}")
            raise StorageError("delete_by_owner", key=owner_key, cause=e) from e

        if failures:
            logger.warning(
                f"Deleted index of owner {owner_id} but {len(failures)} of "
                f"{len(token_ids)} tokens failed"
            )
            raise CascadeDeleteError(owner_id, failures)

        logger.info(f"Deleted {len(token_ids)} tokens for owner {owner_id}")

    def close(self) -> None:
        """Close the Redis connection."""
        self._redis.close()


def create_distributed_store(address: str = "localhost:6379",
                             password: Optional[str] = None,
                             db: int = 0,
                             **kwargs) -> RedisTokenStore:
    """
    Create a Redis token store.

    Args:
        address: Redis address (host:port)
        password: Redis password
        db: Redis database number
        **kwargs: Additional configuration options

    Returns:
        RedisTokenStore instance
    """
    config = RedisConfig(
        address=address,
        password=password,
        db=db,
        **kwargs
    )

    return RedisTokenStore(config)
