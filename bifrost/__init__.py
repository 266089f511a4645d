"""
Bifrost Python Package

Token persistence layer for the Bifrost API gateway.
"""

__version__ = "0.1.0"

from .core.config import Config, TokenConfig
from .core.service import TokenService
from .store.factory import create_token_store
from .tokenstore import (
    Token,
    TokenCollection,
    TokenRepository,
    MemoryTokenStore,
    MongoTokenStore,
    RedisTokenStore,
    new_token,
)
from .types.errors import (
    BifrostError,
    DuplicateKeyError,
    TokenNotFoundError,
    TokenExpiredError,
    StorageError,
    ConfigurationError,
)

__all__ = [
    "Config",
    "TokenConfig",
    "TokenService",
    "create_token_store",
    "Token",
    "TokenCollection",
    "TokenRepository",
    "MemoryTokenStore",
    "MongoTokenStore",
    "RedisTokenStore",
    "new_token",
    "BifrostError",
    "DuplicateKeyError",
    "TokenNotFoundError",
    "TokenExpiredError",
    "StorageError",
    "ConfigurationError",
]
