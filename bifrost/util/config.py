"""
Configuration utilities for Bifrost.
Provides configuration loading and parsing helpers.
"""

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def parse_duration_string(duration_str: str) -> timedelta:
    """
    Parse duration string like '30s', '5m', '2h', '1d' into timedelta.
    """
    if not isinstance(duration_str, str):
        raise ValueError("Duration must be a string")

    duration_str = duration_str.strip().lower()

    pattern = r'^(\d+(?:\.\d+)?)\s*([smhd])$'
    match = re.match(pattern, duration_str)

    if not match:
        raise ValueError(f"Invalid duration format: {duration_str}")

    value, unit = match.groups()
    value = float(value)

    if unit == 's':
        return timedelta(seconds=value)
    elif unit == 'm':
        return timedelta(minutes=value)
    elif unit == 'h':
        return timedelta(hours=value)
    return timedelta(days=value)


def expand_config_variables(config: Dict[str, Any],
                            variables: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Expand variables in configuration values.
    Variables are specified as ${VAR_NAME} in config values.
    """
    if variables is None:
        variables = dict(os.environ)

    def expand_value(value: Any) -> Any:
        if isinstance(value, str):
            pattern = r'\$\{([^}]+)\}'

            def replace_var(match):
                var_name = match.group(1)
                return variables.get(var_name, match.group(0))

            return re.sub(pattern, replace_var, value)
        elif isinstance(value, dict):
            return {k: expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [expand_value(item) for item in value]
        else:
            return value

    return expand_value(config)


def load_config_file(file_path: str) -> Dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_ext == '.json':
            return json.load(f)
        elif file_ext in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")
