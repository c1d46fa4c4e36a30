"""Shared configuration utilities and constants.

This module provides the foundation for consistent configuration handling
across the library and the ``afq`` command.
"""

import os
from typing import Any, Optional, TypeVar

# Type variable for config values
T = TypeVar("T")

# === Environment Variable Prefix ===

ENV_PREFIX = "AFQ_"

# === Environment Variable Names ===


class EnvVars:
    """Centralized environment variable names for consistent access."""

    # === Queue ===
    DEBUG = f"{ENV_PREFIX}DEBUG"
    MAX_HISTORY_SIZE = f"{ENV_PREFIX}MAX_HISTORY_SIZE"
    DEFAULT_DELAY_MS = f"{ENV_PREFIX}DEFAULT_DELAY_MS"
    QUEUE_NAME = f"{ENV_PREFIX}QUEUE_NAME"
    AUTO_EXECUTE = f"{ENV_PREFIX}AUTO_EXECUTE"

    # === Metrics ===
    METRICS_ENABLED = f"{ENV_PREFIX}METRICS_ENABLED"

    # === Logging ===
    LOG_LEVEL = f"{ENV_PREFIX}LOG_LEVEL"
    LOG_FORMAT = f"{ENV_PREFIX}LOG_FORMAT"


_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def parse_bool(value: str) -> bool:
    """
    Parse a boolean setting.

    Raises:
        ValueError: If the value is not one of the recognised spellings
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"expected one of {', '.join(_TRUE_VALUES + _FALSE_VALUES)}, got {value!r}")


def get_env_value(env_var: str, default: T, type_converter: type = str) -> T:
    """
    Get a value from an environment variable with type conversion.

    Empty values are treated as unset.

    Args:
        env_var: Environment variable name
        default: Default value if not set
        type_converter: Type to convert to (str, int, float, bool)

    Returns:
        The environment value converted to the specified type, or the default

    Raises:
        ValueError: If the value can't be converted; the message names the variable
    """
    env_value = os.getenv(env_var)
    if not env_value:
        return default

    try:
        if type_converter == bool:
            return parse_bool(env_value)  # type: ignore
        return type_converter(env_value)
    except ValueError as e:
        raise ValueError(f"{env_var}: {e}") from e


def get_config_value(
    cli_arg: Optional[Any],
    env_var: str,
    default: T,
    type_converter: type = str,
) -> T:
    """
    Get a configuration value with priority: CLI > Environment > Default.

    Args:
        cli_arg: CLI argument value (highest priority)
        env_var: Environment variable name
        default: Default value (lowest priority)
        type_converter: Type to convert the environment value to

    Returns:
        The resolved configuration value
    """
    if cli_arg is not None:
        return cli_arg
    return get_env_value(env_var, default, type_converter)


def get_bool_config_value(cli_flag: Optional[bool], env_var: str, default: bool) -> bool:
    """
    Resolve an on/off setting.

    ``--flag/--no-flag`` options default to None so an absent flag falls
    through to the environment.
    """
    if cli_flag is not None:
        return bool(cli_flag)
    return get_env_value(env_var, default, bool)
