"""
Configuration module for Bifrost.

Settings can be built directly, read from ``BIFROST_*`` environment
variables, or loaded from a JSON/YAML file.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional, Union
import os

from ..tokenstore.mongo import MongoConfig
from ..tokenstore.distributed import RedisConfig
from ..types.errors import ConfigurationError
from ..util.config import (
    expand_config_variables,
    load_config_file,
    parse_duration_string,
)


BACKENDS = ("memory", "mongo", "redis")


def _parse_timeout_minutes(value: Union[int, float, str]) -> float:
    """Accept plain minutes (``30``) or a duration string (``"2h"``)."""
    if isinstance(value, (int, float)):
        return value
    value = value.strip()
    try:
        return float(value)
    except ValueError:
        return parse_duration_string(value).total_seconds() / 60


@dataclass
class TokenConfig:
    """Token lifetime settings"""
    timeout_minutes: float = 60

    @property
    def timeout(self) -> timedelta:
        return timedelta(minutes=self.timeout_minutes)


@dataclass
class Config:
    """Configuration for the token layer"""
    backend: str = "memory"
    token: TokenConfig = field(default_factory=TokenConfig)
    mongo: Optional[MongoConfig] = None
    redis: Optional[RedisConfig] = None

    def validate(self) -> bool:
        """Validate the configuration"""
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                f"backend must be one of: {', '.join(BACKENDS)}",
                config_key="backend",
                config_value=self.backend,
            )
        if self.token.timeout_minutes <= 0:
            raise ConfigurationError(
                "token timeout must be positive",
                config_key="token.timeout",
                config_value=self.token.timeout_minutes,
            )
        if self.backend == "mongo" and (self.mongo is None or not self.mongo.connection_string):
            raise ConfigurationError(
                "mongo backend requires a connection string",
                config_key="mongo.connection_string",
            )
        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        Create configuration from a dictionary.

        Expected layout::

            backend: redis
            token:
              timeout: 30
            redis:
              address: localhost:6379
        """
        token_data = data.get("token") or {}
        mongo_data = data.get("mongo")
        redis_data = data.get("redis")

        try:
            token = TokenConfig(
                timeout_minutes=_parse_timeout_minutes(token_data.get("timeout", 60))
            )
            return cls(
                backend=str(data.get("backend", "memory")).lower(),
                token=token,
                mongo=MongoConfig(**mongo_data) if mongo_data else None,
                redis=RedisConfig(**redis_data) if redis_data else None,
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_file(cls, file_path: str) -> "Config":
        """Load configuration from a JSON or YAML file, expanding ${VAR} references"""
        return cls.from_dict(expand_config_variables(load_config_file(file_path)))

    @classmethod
    def from_env(cls, prefix: str = "BIFROST_") -> "Config":
        """Create configuration from environment variables"""
        mongo = None
        if os.getenv(f"{prefix}MONGO_URL"):
            mongo = MongoConfig(
                connection_string=os.getenv(f"{prefix}MONGO_URL"),
                database=os.getenv(f"{prefix}MONGO_DATABASE", "bifrost"),
                collection=os.getenv(f"{prefix}MONGO_COLLECTION", "tokens"),
            )

        redis = None
        if os.getenv(f"{prefix}REDIS_ADDRESS") or os.getenv(f"{prefix}REDIS_URL"):
            try:
                db = int(os.getenv(f"{prefix}REDIS_DB", "0"))
            except ValueError as e:
                raise ConfigurationError(
                    "redis db must be an integer",
                    config_key=f"{prefix}REDIS_DB",
                ) from e
            redis = RedisConfig(
                address=os.getenv(f"{prefix}REDIS_ADDRESS", "localhost:6379"),
                password=os.getenv(f"{prefix}REDIS_PASSWORD") or None,
                db=db,
                url=os.getenv(f"{prefix}REDIS_URL") or None,
                key_prefix=os.getenv(f"{prefix}REDIS_KEY_PREFIX", ""),
            )

        try:
            timeout = _parse_timeout_minutes(os.getenv(f"{prefix}TOKEN_TIMEOUT", "60"))
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid token timeout: {e}",
                config_key=f"{prefix}TOKEN_TIMEOUT",
            ) from e

        return cls(
            backend=os.getenv(f"{prefix}BACKEND", "memory").lower(),
            token=TokenConfig(timeout_minutes=timeout),
            mongo=mongo,
            redis=redis,
        )
