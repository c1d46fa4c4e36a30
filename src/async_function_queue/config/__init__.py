"""Configuration module for the function queue.

Usage:
    from async_function_queue.config import QueueConfig
    from async_function_queue.config.base import EnvVars, get_config_value

Environment Variable Naming Convention:
    - All settings use the AFQ_* prefix
"""

from .base import (
    ENV_PREFIX,
    EnvVars,
    get_bool_config_value,
    get_config_value,
    get_env_value,
)
from .queue import LOG_FORMATS, QueueConfig

__all__ = [
    # Config classes
    "QueueConfig",
    # Environment variable utilities
    "EnvVars",
    "get_config_value",
    "get_env_value",
    "get_bool_config_value",
    # Constants
    "ENV_PREFIX",
    "LOG_FORMATS",
]
