"""Logging utilities for rolegraph.

This module provides:
- Logging configuration from RegistryConfig
- A formatter that renders registry diagnostics as JSON or plain text,
  keeping structured fields (event, role_id, permission_id, ...) intact
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import LogLevel, RegistryConfig

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "asctime",
    }
)

_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


class RoleGraphFormatter(logging.Formatter):
    """Formatter for registry diagnostics.

    JSON mode emits one object per line with every ``extra`` field as a key.
    Plain mode appends the fields as ``key=value`` pairs after the message.
    """

    def __init__(self, json_format: bool = True, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.json_format = json_format

    def extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        """Collect the fields a caller passed via ``extra``."""
        return {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        fields = self.extra_fields(record)

        if self.json_format:
            log_data.update(fields)
            if record.exc_info:
                log_data["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
            f": {log_data['message']}",
        ]
        parts.extend(f"{key}={value}" for key, value in sorted(fields.items()))
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(config: Optional[RegistryConfig] = None) -> None:
    """Configure the root logger for a process embedding rolegraph.

    Sets the level from ``config.log_level`` and installs a single stream
    handler with :class:`RoleGraphFormatter`. Existing root handlers are
    replaced to avoid duplicate lines.

    Args:
        config: RegistryConfig instance (if None, loads from environment)
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    log_level = _LEVEL_MAP.get(LogLevel(config.log_level), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(RoleGraphFormatter(json_format=config.log_json))
    root_logger.addHandler(console_handler)

    logging.getLogger("rolegraph").setLevel(log_level)


__all__ = [
    "RoleGraphFormatter",
    "setup_logging",
]
