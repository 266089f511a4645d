"""
Factory for creating token repositories.
Provides a centralized way to pick the one backend a deployment runs on.
"""

import logging
from typing import Any, Callable, Dict

from ..core.config import Config
from ..tokenstore.store import TokenRepository
from ..tokenstore.memory import MemoryTokenStore
from ..tokenstore.mongo import MongoConfig, MongoTokenStore
from ..tokenstore.distributed import RedisConfig, RedisTokenStore
from ..types.errors import ConfigurationError


logger = logging.getLogger(__name__)


# Registry of available storage implementations
_STORAGE_IMPLEMENTATIONS: Dict[str, Callable[..., TokenRepository]] = {
    'memory': MemoryTokenStore,
    'mongo': MongoTokenStore,
    'redis': RedisTokenStore,
}


class StorageFactory:
    """Factory for creating storage implementations."""

    @staticmethod
    def create_store(store_type: str, **kwargs: Any) -> TokenRepository:
        """
        Create a token repository instance.

        Args:
            store_type: Type of storage ('memory', 'mongo', 'redis')
            **kwargs: Constructor arguments for the backend

        Returns:
            TokenRepository instance

        Raises:
            ConfigurationError: If store_type is not supported
        """
        implementation = _STORAGE_IMPLEMENTATIONS.get(store_type.lower())
        if not implementation:
            raise ConfigurationError(
                f"Unsupported storage type: {store_type}",
                config_key="backend",
                config_value=store_type,
            )

        store = implementation(**kwargs)
        logger.info(f"Created {store_type} token store")
        return store

    @staticmethod
    def register_implementation(name: str, implementation: Callable[..., TokenRepository]) -> None:
        """
        Register a new storage implementation.

        Args:
            name: Name to register the implementation under
            implementation: TokenRepository class or factory callable
        """
        _STORAGE_IMPLEMENTATIONS[name.lower()] = implementation

    @staticmethod
    def get_available_types() -> list:
        """Get list of available storage types."""
        return list(_STORAGE_IMPLEMENTATIONS.keys())


def create_token_store(config: Config) -> TokenRepository:
    """
    Create the token repository selected by configuration.

    Args:
        config: Bifrost configuration

    Returns:
        TokenRepository instance
    """
    config.validate()

    if config.backend == 'mongo':
        return StorageFactory.create_store('mongo', config=config.mongo or MongoConfig())
    if config.backend == 'redis':
        return StorageFactory.create_store('redis', config=config.redis or RedisConfig())
    return StorageFactory.create_store(config.backend)
