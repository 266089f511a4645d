"""
Package store selects and builds the active token backend.
"""

from .factory import (
    StorageFactory,
    create_token_store
)

__all__ = [
    'StorageFactory',
    'create_token_store'
]
