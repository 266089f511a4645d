"""
Core package: configuration and the token lifecycle service.
"""

from .config import Config, TokenConfig
from .service import TokenService

__all__ = [
    "Config",
    "TokenConfig",
    "TokenService",
]
