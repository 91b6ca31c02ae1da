"""Grant resolution engine.

Answers "is action A on permission P allowed for role R?" and applies
grants/revocations. Action validity is always checked against the
permission catalog, never against a role's current grant table.

Resolution scopes:

- ``is_granted``: the role's own table, then each *direct* parent's own
  table.
- ``is_grant_inherited``: the role's own table, then every ancestor's own
  table (parents, grandparents, ...).

All requested actions must be satisfied inside a single scope; grants are
never unioned across scopes.
"""

from __future__ import annotations

from typing import Iterable, Union

from .actions import Action, expand_actions
from .catalog import Permission, PermissionCatalog
from .diagnostics import DiagnosticsSink, Event, NullDiagnostics
from .exceptions import NilPermissionError, PermissionNotFoundError, UnknownActionError
from .graph import RoleGraph
from .role import Role

PermissionRef = Union[Permission, str, None]


class GrantEngine:
    """Grant storage and resolution over a catalog and a role graph."""

    def __init__(
        self,
        catalog: PermissionCatalog,
        graph: RoleGraph,
        diagnostics: DiagnosticsSink | None = None,
    ) -> None:
        self._catalog = catalog
        self._graph = graph
        self._diagnostics = diagnostics or NullDiagnostics()

    # ── Mutations ───────────────────────────────────────

    def permit(self, role_id: str, permission: PermissionRef, *actions: str) -> None:
        """Grant ``actions`` on ``permission`` to a role.

        Raises:
            NilPermissionError: ``permission`` is None.
            PermissionNotFoundError: ``permission`` is an unknown ID.
            RoleNotFoundError: The role is not registered.
            UnknownActionError: An action is not declared on the permission.
                Nothing is granted in that case.
        """
        perm, role, expanded = self._prepare_mutation("permit", role_id, permission, actions)
        if expanded:
            role.grant(perm.id, expanded)

    def revoke(self, role_id: str, permission: PermissionRef, *actions: str) -> None:
        """Revoke ``actions`` on ``permission`` from a role.

        When no action remains granted the permission entry is dropped from
        the role's table. Raises the same errors as :meth:`permit`.
        """
        perm, role, expanded = self._prepare_mutation("revoke", role_id, permission, actions)
        if role.revoke(perm.id, expanded):
            self._diagnostics.debug(
                Event.GRANT_DROPPED,
                f"deleting permission {perm.id} from role {role_id} as no valid action found",
                role_id=role_id,
                permission_id=perm.id,
            )

    def _prepare_mutation(
        self,
        verb: str,
        role_id: str,
        permission: PermissionRef,
        actions: Iterable[str],
    ) -> tuple[Permission, Role, tuple[str, ...]]:
        if permission is None:
            self._diagnostics.error(
                Event.NIL_PERMISSION,
                f"nil permission is sent to {verb} for role {role_id}",
                role_id=role_id,
            )
            raise NilPermissionError(role_id=role_id)
        perm = self._resolve(permission)
        if perm is None:
            self._diagnostics.error(
                Event.PERMISSION_NOT_FOUND,
                f"permission {permission} is not registered",
                role_id=role_id,
                permission_id=permission,
            )
            raise PermissionNotFoundError(f"permission {permission} is not registered", permission_id=permission)
        role = self._graph.get(role_id)
        expanded = expand_actions(actions)
        for action in expanded:
            if action == Action.NONE or not self._catalog.exists(perm.id, action):
                self._diagnostics.error(
                    Event.UNKNOWN_ACTION,
                    f"action {action!r} is not registered for permission {perm.id}",
                    role_id=role_id,
                    permission_id=perm.id,
                    action=action,
                )
                raise UnknownActionError(
                    f"action {action!r} is not registered for permission {perm.id}",
                    role_id=role_id,
                    permission_id=perm.id,
                    action=action,
                )
        return perm, role, expanded

    # ── Queries ─────────────────────────────────────────

    def is_granted(self, role_id: str, permission: PermissionRef, *actions: str) -> bool:
        """Check the role or one of its direct parents holds every action."""
        return self._check(role_id, permission, actions, inherited=False)

    def is_grant_inherited(self, role_id: str, permission: PermissionRef, *actions: str) -> bool:
        """Check the role or any single ancestor holds every action."""
        return self._check(role_id, permission, actions, inherited=True)

    def any_granted(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return any(self.is_granted(role_id, permission, *actions) for role_id in role_ids)

    def all_granted(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return all(self.is_granted(role_id, permission, *actions) for role_id in role_ids)

    def any_grant_inherited(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return any(self.is_grant_inherited(role_id, permission, *actions) for role_id in role_ids)

    def all_grant_inherited(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return all(self.is_grant_inherited(role_id, permission, *actions) for role_id in role_ids)

    def get_all_permissions(self, role_ids: Iterable[str]) -> dict[str, set[str]]:
        """Flatten the grants of each role and its direct parents.

        Returns:
            permission ID → granted actions, unioned over every requested role.
            Unknown role IDs are skipped.
        """
        merged: dict[str, set[str]] = {}
        for role_id in role_ids:
            role = self._graph.find(role_id)
            if role is None:
                self._diagnostics.error(Event.ROLE_NOT_FOUND, f"role with ID {role_id} is not found", role_id=role_id)
                continue
            for scope in [role, *self._graph.parents(role_id)]:
                for permission_id, granted in scope.grants().items():
                    merged.setdefault(permission_id, set()).update(granted)
        return merged

    def _check(self, role_id: str, permission: PermissionRef, actions: Iterable[str], *, inherited: bool) -> bool:
        if permission is None:
            self._diagnostics.error(
                Event.NIL_PERMISSION,
                f"nil permission is sent for granted check for role {role_id}",
                role_id=role_id,
            )
            return False
        perm = self._resolve(permission)
        if perm is None:
            self._diagnostics.error(
                Event.PERMISSION_NOT_FOUND,
                f"permission {permission} is not registered",
                role_id=role_id,
                permission_id=permission,
            )
            return False

        expanded = expand_actions(actions)
        for action in expanded:
            if not self._catalog.exists(perm.id, action):
                self._diagnostics.error(
                    Event.UNKNOWN_ACTION,
                    f"action {action!r} for permission {perm.id} is not defined, while checking grants for role {role_id}",
                    role_id=role_id,
                    permission_id=perm.id,
                    action=action,
                )
                return False

        role = self._graph.find(role_id)
        if role is None:
            self._diagnostics.error(
                Event.ROLE_NOT_FOUND,
                f"role with ID {role_id} is not found while checking grants for permission {perm.id}",
                role_id=role_id,
                permission_id=perm.id,
            )
            return False

        relatives = self._graph.ancestors(role_id) if inherited else self._graph.parents(role_id)
        for scope in (role, *relatives):
            if scope.is_granted(perm.id, expanded):
                return True
        self._diagnostics.debug(
            Event.ACTION_NOT_GRANTED,
            f"actions {list(expanded)} on permission {perm.id} are not granted to role {role_id}",
            role_id=role_id,
            permission_id=perm.id,
            inherited=inherited,
        )
        return False

    def _resolve(self, permission: Permission | str) -> Permission | None:
        if isinstance(permission, Permission):
            return permission
        return self._catalog.find(permission)


__all__ = [
    "GrantEngine",
    "PermissionRef",
]
