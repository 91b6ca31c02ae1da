"""Configuration for rolegraph registries.

Pydantic-validated settings shared by the registry, its diagnostics sink,
the logging setup and the gRPC interceptor. Environment variables are read
in exactly one place: :func:`load_config_from_env`.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RegistryConfig(BaseModel):
    """Settings for a :class:`~rolegraph.registry.Registry`.

    Attributes:
        log_level: Level used by :func:`rolegraph.logging.setup_logging`.
        log_json: Emit JSON log lines instead of plain text.
        diagnostics_enabled: Route registry diagnostics to logging. False = null sink.
        snapshot_indent: Indentation of ``save_json`` output. None = compact.
        roles_metadata_key: gRPC metadata key carrying the caller's role IDs.
    """

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the registry",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )
    diagnostics_enabled: bool = Field(
        default=True,
        description="Emit registry diagnostics through the rolegraph logger",
    )
    snapshot_indent: Optional[int] = Field(
        default=2,
        ge=0,
        description="Indentation for save_json output (None = compact)",
    )
    roles_metadata_key: str = Field(
        default="x-roles",
        min_length=1,
        description="gRPC metadata key holding comma-separated role IDs",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("roles_metadata_key")
    @classmethod
    def validate_metadata_key(cls, v: str) -> str:
        """gRPC metadata keys are lowercase ASCII."""
        return v.strip().lower()

    model_config = {
        "extra": "forbid",
    }


def load_config_from_env() -> RegistryConfig:
    """Load registry configuration from environment variables.

    Environment variables:
    - ROLEGRAPH_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - ROLEGRAPH_LOG_JSON: Use JSON log format (true/false)
    - ROLEGRAPH_DIAGNOSTICS: Enable diagnostics (true/false, default: true)
    - ROLEGRAPH_SNAPSHOT_INDENT: Indent for save_json ("none" = compact)
    - ROLEGRAPH_ROLES_METADATA_KEY: gRPC metadata key for caller roles

    Returns:
        RegistryConfig with values from environment or defaults.
    """
    import os

    truthy = ("true", "1", "yes", "on")

    indent_raw = os.getenv("ROLEGRAPH_SNAPSHOT_INDENT", "2").strip().lower()
    indent = None if indent_raw in ("", "none") else int(indent_raw)

    return RegistryConfig(
        log_level=os.getenv("ROLEGRAPH_LOG_LEVEL", "INFO"),
        log_json=os.getenv("ROLEGRAPH_LOG_JSON", "false").lower() in truthy,
        diagnostics_enabled=os.getenv("ROLEGRAPH_DIAGNOSTICS", "true").lower() in truthy,
        snapshot_indent=indent,
        roles_metadata_key=os.getenv("ROLEGRAPH_ROLES_METADATA_KEY", "x-roles"),
    )


__all__ = [
    "LogLevel",
    "RegistryConfig",
    "load_config_from_env",
]
