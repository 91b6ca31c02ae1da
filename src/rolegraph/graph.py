"""Role graph: the arena of roles and their parent edges.

Roles live in a single arena keyed by ID. A parent edge is a role ID stored
on the child and resolved through the arena on every walk, so the arena is
the only owner of Role objects.

Every parent-edge mutation (add, remove, and the severing done by
``remove_role``) runs under one graph-wide edge lock. The cycle check and
the insert of ``add_parent`` are therefore atomic with respect to each
other, and the graph stays acyclic under concurrent writers.
"""

from __future__ import annotations

import threading
from typing import Iterator

from .diagnostics import DiagnosticsSink, Event, NullDiagnostics
from .exceptions import (
    CycleError,
    DuplicateEdgeError,
    DuplicateIDError,
    EdgeNotFoundError,
    InvalidArgumentError,
    RoleNotFoundError,
)
from .role import Role


class RoleGraph:
    """Thread-safe arena of :class:`Role` nodes with acyclic parent edges."""

    def __init__(self, diagnostics: DiagnosticsSink | None = None) -> None:
        self._lock = threading.RLock()
        self._edge_lock = threading.RLock()
        self._roles: dict[str, Role] = {}
        self._diagnostics = diagnostics or NullDiagnostics()

    # ── Nodes ───────────────────────────────────────────

    def register(self, role_id: str, description: str = "") -> Role:
        """Create a role.

        Raises:
            InvalidArgumentError: ``role_id`` is empty.
            DuplicateIDError: A role with this ID already exists.
        """
        if not role_id:
            raise InvalidArgumentError("role id can not be empty")
        with self._lock:
            if role_id in self._roles:
                self._diagnostics.error(
                    Event.DUPLICATE_ROLE,
                    f"role {role_id} is already registered",
                    role_id=role_id,
                )
                raise DuplicateIDError(f"role {role_id} is already registered", role_id=role_id)
            role = self._roles[role_id] = Role(role_id, description)
        return role

    def find(self, role_id: str) -> Role | None:
        with self._lock:
            return self._roles.get(role_id)

    def get(self, role_id: str) -> Role:
        role = self.find(role_id)
        if role is None:
            self._diagnostics.error(Event.ROLE_NOT_FOUND, f"role {role_id} is not registered", role_id=role_id)
            raise RoleNotFoundError(f"role {role_id} is not registered", role_id=role_id)
        return role

    def exists(self, role_id: str) -> bool:
        with self._lock:
            return role_id in self._roles

    def roles(self) -> list[Role]:
        with self._lock:
            return list(self._roles.values())

    def remove(self, role_id: str) -> None:
        """Delete a role and sever it from every role that lists it as a parent.

        Children keep their other parents and their own grants.
        """
        with self._edge_lock:
            with self._lock:
                if self._roles.pop(role_id, None) is None:
                    self._diagnostics.error(
                        Event.ROLE_NOT_FOUND,
                        f"role {role_id} is not registered",
                        role_id=role_id,
                    )
                    raise RoleNotFoundError(f"role {role_id} is not registered", role_id=role_id)
                remaining = list(self._roles.values())
            for role in remaining:
                role._unlink_parent(role_id)

    def adopt(self, role: Role) -> None:
        """Insert an existing Role object (used when cloning a registry)."""
        with self._lock:
            self._roles[role.id] = role

    # ── Edges ───────────────────────────────────────────

    def add_parent(self, child_id: str, parent_id: str) -> None:
        """Make ``parent_id`` a direct parent of ``child_id``.

        Raises:
            RoleNotFoundError: Either role is unknown.
            DuplicateEdgeError: The edge already exists.
            CycleError: ``parent_id`` is ``child_id`` or already descends from it.
        """
        with self._edge_lock:
            child = self.get(child_id)
            self.get(parent_id)
            if child.has_parent(parent_id):
                self._diagnostics.error(
                    Event.DUPLICATE_EDGE,
                    f"parent role with ID {parent_id} is already defined for role {child_id}",
                    role_id=child_id,
                    parent_id=parent_id,
                )
                raise DuplicateEdgeError(
                    f"parent role with ID {parent_id} is already defined for role {child_id}",
                    role_id=child_id,
                    parent_id=parent_id,
                )
            if parent_id == child_id or self._reaches(parent_id, child_id):
                self._diagnostics.error(
                    Event.CYCLE_REJECTED,
                    f"circular reference is found for parent role {parent_id} while adding to role {child_id}",
                    role_id=child_id,
                    parent_id=parent_id,
                )
                raise CycleError(
                    f"circular reference is found for parent role {parent_id} while adding to role {child_id}",
                    role_id=child_id,
                    parent_id=parent_id,
                )
            child._link_parent(parent_id)

    def remove_parent(self, child_id: str, parent_id: str) -> None:
        """Drop the direct edge ``child_id`` → ``parent_id``.

        Raises:
            RoleNotFoundError: ``child_id`` is unknown.
            EdgeNotFoundError: The edge does not exist.
        """
        with self._edge_lock:
            child = self.get(child_id)
            if not child._unlink_parent(parent_id):
                self._diagnostics.error(
                    Event.EDGE_NOT_FOUND,
                    f"parent role with ID {parent_id} is not defined for role {child_id}",
                    role_id=child_id,
                    parent_id=parent_id,
                )
                raise EdgeNotFoundError(
                    f"parent role with ID {parent_id} is not defined for role {child_id}",
                    role_id=child_id,
                    parent_id=parent_id,
                )

    def has_parent(self, role_id: str, parent_id: str) -> bool:
        """True only when ``parent_id`` is a direct parent of ``role_id``."""
        role = self.find(role_id)
        return role is not None and role.has_parent(parent_id)

    def has_ancestor(self, role_id: str, ancestor_id: str) -> bool:
        """True when ``ancestor_id`` is reachable from ``role_id`` via parent edges."""
        return self.exists(role_id) and self._reaches(role_id, ancestor_id)

    def parents(self, role_id: str) -> list[Role]:
        """Direct parents of ``role_id``; empty for an unknown role."""
        role = self.find(role_id)
        if role is None:
            return []
        return [p for p in (self.find(pid) for pid in role.parent_ids()) if p is not None]

    def ancestors(self, role_id: str) -> list[Role]:
        """Full ancestor closure of ``role_id``, nearest first, each role once."""
        return list(self._walk_ancestors(role_id))

    def _walk_ancestors(self, role_id: str) -> Iterator[Role]:
        start = self.find(role_id)
        if start is None:
            return
        seen = {role_id}
        queue = list(start.parent_ids())
        while queue:
            current_id = queue.pop(0)
            if current_id in seen:
                continue
            seen.add(current_id)
            current = self.find(current_id)
            if current is None:
                continue
            yield current
            queue.extend(current.parent_ids())

    def _reaches(self, start_id: str, target_id: str) -> bool:
        """Depth-first walk of parent edges from ``start_id`` looking for ``target_id``."""
        seen: set[str] = set()
        stack = [start_id]
        while stack:
            current = self.find(stack.pop())
            if current is None or current.id in seen:
                continue
            seen.add(current.id)
            for parent_id in current.parent_ids():
                if parent_id == target_id:
                    return True
                stack.append(parent_id)
        return False

    def __contains__(self, role_id: object) -> bool:
        with self._lock:
            return role_id in self._roles

    def __len__(self) -> int:
        with self._lock:
            return len(self._roles)


__all__ = [
    "RoleGraph",
]
