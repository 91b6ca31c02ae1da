"""Permission catalog.

Permissions are declared once, at development time, together with the
actions that are meaningful for them. A permission's allowed actions never
change after registration and permissions are never removed, so
:class:`Permission` objects can be shared freely between registries.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .actions import Action, expand_actions
from .diagnostics import DiagnosticsSink, Event, NullDiagnostics
from .exceptions import DuplicateIDError, InvalidArgumentError, PermissionNotFoundError


@dataclass(frozen=True)
class Permission:
    """A named resource plus the closed set of actions valid on it.

    Attributes:
        id: Unique permission identifier (e.g. ``"users"``).
        description: Human-readable description.
        actions: Allowed actions, ``crud`` already expanded.
    """

    id: str
    description: str = ""
    actions: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def create(cls, permission_id: str, description: str, *actions: str) -> Permission:
        return cls(id=permission_id, description=description, actions=frozenset(expand_actions(actions)))

    def allows(self, action: str) -> bool:
        """Check a single action. The empty action is always allowed."""
        if action == Action.NONE:
            return True
        return all(a in self.actions for a in expand_actions((action,)))

    def __str__(self) -> str:
        return f"Permission{{ID: {self.id}, Description: {self.description}}}"


class PermissionCatalog:
    """Thread-safe, append-only registry of :class:`Permission` definitions."""

    def __init__(self, diagnostics: DiagnosticsSink | None = None) -> None:
        self._lock = threading.RLock()
        self._permissions: dict[str, Permission] = {}
        self._diagnostics = diagnostics or NullDiagnostics()

    def register(self, permission_id: str, description: str, *actions: str) -> Permission:
        """Define a permission with its allowed actions.

        Raises:
            InvalidArgumentError: ``permission_id`` is empty.
            DuplicateIDError: A permission with this ID already exists.
        """
        if not permission_id:
            raise InvalidArgumentError("permission id can not be empty")
        perm = Permission.create(permission_id, description, *actions)
        with self._lock:
            if permission_id in self._permissions:
                self._diagnostics.error(
                    Event.DUPLICATE_PERMISSION,
                    f"permission {permission_id} is already registered",
                    permission_id=permission_id,
                )
                raise DuplicateIDError(
                    f"permission {permission_id} is already registered",
                    permission_id=permission_id,
                )
            self._permissions[permission_id] = perm
        return perm

    def exists(self, permission_id: str, action: str = Action.NONE) -> bool:
        """Check the permission is defined and, unless ``action`` is empty, allows it."""
        perm = self.find(permission_id)
        if perm is None:
            return False
        return perm.allows(action)

    def find(self, permission_id: str) -> Permission | None:
        with self._lock:
            return self._permissions.get(permission_id)

    def get(self, permission_id: str) -> Permission:
        perm = self.find(permission_id)
        if perm is None:
            raise PermissionNotFoundError(
                f"permission {permission_id} is not registered",
                permission_id=permission_id,
            )
        return perm

    def permissions(self) -> list[Permission]:
        with self._lock:
            return list(self._permissions.values())

    def copy(self, diagnostics: DiagnosticsSink | None = None) -> PermissionCatalog:
        """New catalog aliasing the same (immutable) Permission objects."""
        clone = PermissionCatalog(diagnostics or self._diagnostics)
        with self._lock:
            clone._permissions = dict(self._permissions)
        return clone

    def __contains__(self, permission_id: object) -> bool:
        with self._lock:
            return permission_id in self._permissions

    def __len__(self) -> int:
        with self._lock:
            return len(self._permissions)


__all__ = [
    "Permission",
    "PermissionCatalog",
]
