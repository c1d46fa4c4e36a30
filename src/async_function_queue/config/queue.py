"""Configuration for function queues and the ``afq`` command.

All settings use the AFQ_* environment variable prefix.
"""

from dataclasses import dataclass
from typing import Optional

from .base import EnvVars, get_bool_config_value, get_config_value

LOG_FORMATS = ("json", "text")


@dataclass
class QueueConfig:
    """Function queue configuration.

    Configuration can be set via:
    1. CLI arguments (highest priority)
    2. Environment variables
    3. Default values (lowest priority)
    """

    # === Queue ===
    debug: bool = False
    max_history_size: int = 100
    default_delay_ms: Optional[float] = None
    queue_name: str = "default"
    auto_execute: bool = True

    # === Metrics ===
    metrics_enabled: bool = False

    # === Logging ===
    log_level: str = "INFO"
    log_format: str = "text"  # json|text

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ValueError: If a value is out of range
        """
        if self.max_history_size < 0:
            raise ValueError(f"max_history_size must be >= 0, got {self.max_history_size}")
        if self.default_delay_ms is not None and self.default_delay_ms < 0:
            raise ValueError(f"default_delay_ms must be >= 0, got {self.default_delay_ms}")
        if self.log_format.lower() not in LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format!r}"
            )

    @classmethod
    def from_args_and_env(cls, cli_args: Optional[dict] = None) -> "QueueConfig":
        """
        Load configuration from CLI arguments, environment variables, and defaults.

        Priority: CLI args > Environment variables > Defaults

        Args:
            cli_args: Optional dictionary of CLI arguments

        Returns:
            QueueConfig instance
        """
        if cli_args is None:
            cli_args = {}

        defaults = cls()

        config = cls(
            debug=get_bool_config_value(
                cli_args.get("debug"), EnvVars.DEBUG, defaults.debug
            ),
            max_history_size=get_config_value(
                cli_args.get("max_history_size"),
                EnvVars.MAX_HISTORY_SIZE,
                defaults.max_history_size,
                int,
            ),
            default_delay_ms=get_config_value(
                cli_args.get("default_delay_ms"),
                EnvVars.DEFAULT_DELAY_MS,
                defaults.default_delay_ms,
                float,
            ),
            queue_name=get_config_value(
                cli_args.get("queue_name"), EnvVars.QUEUE_NAME, defaults.queue_name
            ),
            auto_execute=get_bool_config_value(
                cli_args.get("auto_execute"), EnvVars.AUTO_EXECUTE, defaults.auto_execute
            ),
            metrics_enabled=get_bool_config_value(
                cli_args.get("metrics_enabled"),
                EnvVars.METRICS_ENABLED,
                defaults.metrics_enabled,
            ),
            log_level=get_config_value(
                cli_args.get("log_level"), EnvVars.LOG_LEVEL, defaults.log_level
            ),
            log_format=get_config_value(
                cli_args.get("log_format"), EnvVars.LOG_FORMAT, defaults.log_format
            ),
        )
        return config

    def display(self) -> str:
        """Display configuration in human-readable format."""
        delay = (
            f"{self.default_delay_ms}ms" if self.default_delay_ms is not None else "(none)"
        )
        lines = [
            "Function Queue Configuration:",
            f"  Queue Name: {self.queue_name}",
            f"  Debug: {self.debug}",
            f"  Max History Size: {self.max_history_size}",
            f"  Default Delay: {delay}",
            f"  Auto Execute: {self.auto_execute}",
            f"  Metrics: {'enabled' if self.metrics_enabled else 'disabled'}",
            f"  Log Level: {self.log_level}",
            f"  Log Format: {self.log_format}",
        ]
        return "\n".join(lines)
