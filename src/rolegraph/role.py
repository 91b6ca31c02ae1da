"""Role node: grant table and parent-edge set.

A Role holds only its own state. Parent edges are stored as role IDs and
resolved through the owning :class:`~rolegraph.graph.RoleGraph`; a Role
never references another Role object.

Grant table layout::

    {permission_id: {action: True | False}}

``True`` means granted, ``False`` means explicitly revoked. A permission
whose flags are all ``False`` is dropped from the table.
"""

from __future__ import annotations

import threading
from typing import Iterable

from .actions import Action


class Role:
    """A named principal group with direct grants and parent edges.

    Each permission entry of the grant table has its own lock, so grants on
    different permissions of one role never serialize against each other.
    Parent edges are mutated only by the owning graph.
    """

    def __init__(self, role_id: str, description: str = "") -> None:
        self.id = role_id
        self.description = description
        self._table_lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}
        self._grants: dict[str, dict[str, bool]] = {}
        self._parents_lock = threading.Lock()
        # dict keeps insertion order for stable snapshots
        self._parents: dict[str, None] = {}

    def __repr__(self) -> str:
        return f"Role(id={self.id!r}, description={self.description!r})"

    # ── Grant table ─────────────────────────────────────

    def _lock_for(self, permission_id: str) -> threading.Lock:
        with self._table_lock:
            lock = self._key_locks.get(permission_id)
            if lock is None:
                lock = self._key_locks[permission_id] = threading.Lock()
            return lock

    def grant(self, permission_id: str, actions: Iterable[str]) -> None:
        """Flag ``actions`` as granted on ``permission_id``.

        Actions must already be validated against the catalog.
        """
        with self._lock_for(permission_id):
            with self._table_lock:
                flags = self._grants.setdefault(permission_id, {})
            for action in actions:
                flags[action] = True

    def revoke(self, permission_id: str, actions: Iterable[str]) -> bool:
        """Flag ``actions`` as revoked on ``permission_id``.

        Returns:
            True if no action remained granted and the entry was dropped.
        """
        with self._lock_for(permission_id):
            with self._table_lock:
                flags = self._grants.get(permission_id)
            if flags is None:
                return False
            for action in actions:
                flags[action] = False
            if any(flags.values()):
                return False
            with self._table_lock:
                del self._grants[permission_id]
            return True

    def is_granted(self, permission_id: str, actions: Iterable[str]) -> bool:
        """Check every action is granted in this role's own table.

        The empty action only requires the permission entry to be present.
        """
        with self._lock_for(permission_id):
            with self._table_lock:
                flags = self._grants.get(permission_id)
            if flags is None:
                return False
            return all(flags.get(a) is True for a in actions if a != Action.NONE)

    def has_grant_entry(self, permission_id: str) -> bool:
        with self._table_lock:
            return permission_id in self._grants

    def action_flags(self, permission_id: str) -> dict[str, bool]:
        """Copy of the raw flags for one permission, revoked actions included."""
        with self._lock_for(permission_id):
            with self._table_lock:
                return dict(self._grants.get(permission_id, {}))

    def grants(self) -> dict[str, list[str]]:
        """Currently granted actions per permission. Revoked flags are omitted."""
        with self._table_lock:
            permission_ids = list(self._grants)
        result: dict[str, list[str]] = {}
        for permission_id in permission_ids:
            granted = [a for a, flag in self.action_flags(permission_id).items() if flag]
            if granted:
                result[permission_id] = granted
        return result

    # ── Parent edges ────────────────────────────────────

    def parent_ids(self) -> list[str]:
        with self._parents_lock:
            return list(self._parents)

    def has_parent(self, parent_id: str) -> bool:
        """Direct parent check."""
        with self._parents_lock:
            return parent_id in self._parents

    def _link_parent(self, parent_id: str) -> None:
        with self._parents_lock:
            self._parents[parent_id] = None

    def _unlink_parent(self, parent_id: str) -> bool:
        with self._parents_lock:
            if parent_id not in self._parents:
                return False
            del self._parents[parent_id]
            return True


__all__ = [
    "Role",
]
