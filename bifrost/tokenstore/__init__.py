"""
Token store package for Bifrost.

This package provides the token entity, the repository contract and
three interchangeable backends: in-memory, MongoDB and Redis.
"""

from .store import (
    DEFAULT_TOKEN_TIMEOUT,
    Token,
    TokenCollection,
    TokenRepository,
    new_token,
)

from .memory import (
    MemoryTokenStore,
    create_memory_store
)

from .mongo import (
    MongoConfig,
    MongoTokenStore,
    create_mongo_store
)

from .distributed import (
    RedisConfig,
    RedisTokenStore,
    create_distributed_store
)

__all__ = [
    # Core types and interfaces
    "DEFAULT_TOKEN_TIMEOUT",
    "Token",
    "TokenCollection",
    "TokenRepository",
    "new_token",

    # Memory store
    "MemoryTokenStore",
    "create_memory_store",

    # Document store
    "MongoConfig",
    "MongoTokenStore",
    "create_mongo_store",

    # Key-value store
    "RedisConfig",
    "RedisTokenStore",
    "create_distributed_store",
]
