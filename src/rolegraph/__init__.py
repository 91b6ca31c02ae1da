"""rolegraph: in-process role based access control.

Defines:
- Action: well-known action tags and the ``crud`` shorthand
- Permission / PermissionCatalog: resources and the actions valid on them
- Role / RoleGraph: roles and their acyclic parent edges
- GrantEngine: direct and inherited grant resolution
- Registry: the facade tying them together, with JSON snapshots
"""

from .actions import Action, expand_actions
from .catalog import Permission, PermissionCatalog
from .config import LogLevel, RegistryConfig, load_config_from_env
from .diagnostics import (
    DiagnosticRecord,
    DiagnosticsSink,
    Event,
    LoggingDiagnostics,
    NullDiagnostics,
    RecordingDiagnostics,
)
from .engine import GrantEngine
from .exceptions import (
    CycleError,
    DuplicateEdgeError,
    DuplicateIDError,
    EdgeNotFoundError,
    InvalidArgumentError,
    NilPermissionError,
    NotFoundError,
    PermissionNotFoundError,
    RoleGraphError,
    RoleNotFoundError,
    SnapshotError,
    UnknownActionError,
)
from .graph import RoleGraph
from .logging import RoleGraphFormatter, setup_logging
from .registry import Registry
from .role import Role
from .snapshot import PermissionRecord, RoleGrants, Snapshot

__all__ = [
    "Action",
    "CycleError",
    "DiagnosticRecord",
    "DiagnosticsSink",
    "DuplicateEdgeError",
    "DuplicateIDError",
    "EdgeNotFoundError",
    "Event",
    "GrantEngine",
    "InvalidArgumentError",
    "LogLevel",
    "LoggingDiagnostics",
    "NilPermissionError",
    "NotFoundError",
    "NullDiagnostics",
    "Permission",
    "PermissionCatalog",
    "PermissionNotFoundError",
    "PermissionRecord",
    "RecordingDiagnostics",
    "Registry",
    "RegistryConfig",
    "Role",
    "RoleGraph",
    "RoleGraphError",
    "RoleGraphFormatter",
    "RoleGrants",
    "RoleNotFoundError",
    "Snapshot",
    "SnapshotError",
    "UnknownActionError",
    "expand_actions",
    "load_config_from_env",
    "setup_logging",
]
