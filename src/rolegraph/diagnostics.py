"""Diagnostics sinks for registry events.

A registry reports registration conflicts, invalid actions, cycle
rejections and failed lookups to a sink passed in at construction. There
is no process-wide logger to swap; each registry owns its sink.

Provides:
- ``DiagnosticsSink``: the protocol a sink implements.
- ``LoggingDiagnostics``: forwards events to stdlib logging (default).
- ``NullDiagnostics``: drops everything.
- ``RecordingDiagnostics``: keeps events in memory, for tests and tooling.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .config import RegistryConfig


class Event:
    """Diagnostic event names."""

    DUPLICATE_PERMISSION = "duplicate_permission"
    DUPLICATE_ROLE = "duplicate_role"
    ROLE_NOT_FOUND = "role_not_found"
    PERMISSION_NOT_FOUND = "permission_not_found"
    NIL_PERMISSION = "nil_permission"
    UNKNOWN_ACTION = "unknown_action"
    DUPLICATE_EDGE = "duplicate_edge"
    EDGE_NOT_FOUND = "edge_not_found"
    CYCLE_REJECTED = "cycle_rejected"
    GRANT_DROPPED = "grant_dropped"
    ACTION_NOT_GRANTED = "action_not_granted"
    SNAPSHOT_FAILED = "snapshot_failed"


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Receiver for registry diagnostics.

    ``fields`` carries structured context such as ``role_id``,
    ``permission_id``, ``action`` or ``parent_id``.
    """

    def debug(self, event: str, message: str, **fields: Any) -> None: ...

    def error(self, event: str, message: str, **fields: Any) -> None: ...


class LoggingDiagnostics:
    """Sink that writes events to a stdlib logger.

    The event name and fields travel in ``extra`` so
    :class:`~rolegraph.logging.RoleGraphFormatter` can render them.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("rolegraph.diagnostics")

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, event: str, message: str, **fields: Any) -> None:
        self._logger.debug(message, extra={"event": event, **fields})

    def error(self, event: str, message: str, **fields: Any) -> None:
        self._logger.error(message, extra={"event": event, **fields})


class NullDiagnostics:
    """Sink that discards every event."""

    def debug(self, event: str, message: str, **fields: Any) -> None:
        pass

    def error(self, event: str, message: str, **fields: Any) -> None:
        pass


@dataclass(frozen=True)
class DiagnosticRecord:
    """One event captured by :class:`RecordingDiagnostics`."""

    level: str
    event: str
    message: str
    fields: dict[str, Any] = field(default_factory=dict)


class RecordingDiagnostics:
    """Sink that keeps events in memory.

    Example::

        sink = RecordingDiagnostics()
        registry = Registry(diagnostics=sink)
        registry.is_granted("ghost", users)
        assert sink.events() == ["role_not_found"]
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[DiagnosticRecord] = []

    def debug(self, event: str, message: str, **fields: Any) -> None:
        self._append("debug", event, message, fields)

    def error(self, event: str, message: str, **fields: Any) -> None:
        self._append("error", event, message, fields)

    def _append(self, level: str, event: str, message: str, fields: dict[str, Any]) -> None:
        with self._lock:
            self._records.append(DiagnosticRecord(level, event, message, dict(fields)))

    @property
    def records(self) -> list[DiagnosticRecord]:
        with self._lock:
            return list(self._records)

    def events(self, level: str | None = None) -> list[str]:
        """Event names in arrival order, optionally filtered by level."""
        return [r.event for r in self.records if level is None or r.level == level]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


def diagnostics_from_config(config: RegistryConfig) -> DiagnosticsSink:
    """Build the sink a config asks for."""
    if not config.diagnostics_enabled:
        return NullDiagnostics()
    return LoggingDiagnostics()


__all__ = [
    "DiagnosticRecord",
    "DiagnosticsSink",
    "Event",
    "LoggingDiagnostics",
    "NullDiagnostics",
    "RecordingDiagnostics",
    "diagnostics_from_config",
]
