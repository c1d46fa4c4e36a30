"""Log formatting for queue lifecycle records.

Queue components log with ``extra={"queue": ..., "item_id": ...}``; both
formatters surface those fields, JSON as top-level keys and text as a
``[queue=... item=...]`` prefix.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "context"}


def _queue_context(record: logging.LogRecord) -> str:
    parts = []
    queue = getattr(record, "queue", None)
    if queue is not None:
        parts.append(f"queue={queue}")
    item_id = getattr(record, "item_id", None)
    if item_id is not None:
        parts.append(f"item={item_id}")
    return f"[{' '.join(parts)}] " if parts else ""


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        log_data: Dict[str, Any] = {
            "timestamp": created.replace(tzinfo=None).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Single-line text with the queue/item context ahead of the message."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        """
        Initialize formatter.

        Args:
            use_colors: Colour the level name when stderr is a terminal
        """
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(context)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the record unchanged
        record = logging.makeLogRecord(vars(record))
        record.context = _queue_context(record)
        if self.use_colors and record.levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
            )
        return super().format(record)


def setup_logging(level: str = "INFO", format_type: str = "text") -> None:
    """
    Send all records to stderr through one of the formatters above.

    Args:
        level: Log level name; unknown names fall back to INFO
        format_type: 'json' or 'text'
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    if format_type.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter(use_colors=True))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Event loop debug chatter drowns out queue lifecycle records
    logging.getLogger("asyncio").setLevel(logging.WARNING)
