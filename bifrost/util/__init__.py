"""
Utility package for Bifrost configuration handling.
"""

from .config import (
    parse_duration_string,
    expand_config_variables,
    load_config_file,
)

__all__ = [
    'parse_duration_string',
    'expand_config_variables',
    'load_config_file',
]
