"""Registry facade: catalog + role graph + grant engine.

Library usage has two phases.

Development phase: declare permissions with their valid actions::

    from rolegraph import Action, Registry

    registry = Registry()
    users = registry.register_permission("users", "User resource", Action.CRUD)
    posts = registry.register_permission("posts", "Post resource", Action.CRUD, "approve")

Runtime phase: define roles, wire inheritance and grants, then query::

    registry.register_role("editor", "Editor role")
    registry.register_role("admin", "Admin role")
    registry.add_parent("admin", "editor")
    registry.permit("editor", posts, Action.READ, Action.UPDATE)
    registry.permit("admin", users, Action.CRUD)

    registry.is_granted("admin", posts, Action.READ)    # True (direct parent)
    registry.any_granted(["editor", "admin"], users, Action.DELETE)  # True

Persisting and loading::

    data = registry.serialize()
    restored = registry.clone(include_roles=False)
    restored.deserialize(data)

The ``permissions`` section of a snapshot is for reference; restoring needs
the target registry to already hold the same catalog.
"""

from __future__ import annotations

from typing import IO, Iterable

from pydantic import ValidationError

from .catalog import Permission, PermissionCatalog
from .config import RegistryConfig
from .diagnostics import DiagnosticsSink, Event, LoggingDiagnostics, diagnostics_from_config
from .engine import GrantEngine, PermissionRef
from .exceptions import RoleGraphError, SnapshotError
from .graph import RoleGraph
from .role import Role
from .snapshot import PermissionRecord, RoleGrants, Snapshot


class Registry:
    """Role based access control registry.

    Safe to call from many threads without external locking. See
    :mod:`rolegraph.graph` and :mod:`rolegraph.role` for the locking model.

    Args:
        diagnostics: Sink for registration conflicts, invalid actions, cycle
            rejections and failed lookups. Defaults to logging.
        config: Registry settings (snapshot indentation, ...).
        catalog: Existing catalog to build on. Its Permission objects are
            shared, never copied.
    """

    def __init__(
        self,
        diagnostics: DiagnosticsSink | None = None,
        config: RegistryConfig | None = None,
        *,
        catalog: PermissionCatalog | None = None,
    ) -> None:
        self._config = config or RegistryConfig()
        self._diagnostics = diagnostics if diagnostics is not None else LoggingDiagnostics()
        self._catalog = catalog.copy(self._diagnostics) if catalog is not None else PermissionCatalog(self._diagnostics)
        self._graph = RoleGraph(self._diagnostics)
        self._engine = GrantEngine(self._catalog, self._graph, self._diagnostics)

    @classmethod
    def from_config(cls, config: RegistryConfig) -> Registry:
        """Build a registry whose diagnostics sink follows ``config``."""
        return cls(diagnostics=diagnostics_from_config(config), config=config)

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def diagnostics(self) -> DiagnosticsSink:
        return self._diagnostics

    @property
    def catalog(self) -> PermissionCatalog:
        return self._catalog

    @property
    def graph(self) -> RoleGraph:
        return self._graph

    def clone(self, include_roles: bool) -> Registry:
        """Copy the registry.

        The catalog is always copied by sharing its immutable Permission
        objects. With ``include_roles`` the Role objects are shared as well,
        so grant changes on one registry's roles are visible in the other.
        """
        target = Registry(self._diagnostics, self._config, catalog=self._catalog)
        if include_roles:
            for role in self._graph.roles():
                target._graph.adopt(role)
        return target

    # ── Permission catalog ──────────────────────────────

    def register_permission(self, permission_id: str, description: str, *actions: str) -> Permission:
        return self._catalog.register(permission_id, description, *actions)

    def permission_exists(self, permission_id: str, action: str = "") -> bool:
        return self._catalog.exists(permission_id, action)

    def get_permission(self, permission_id: str) -> Permission:
        return self._catalog.get(permission_id)

    def permissions(self) -> list[Permission]:
        return self._catalog.permissions()

    # ── Role graph ──────────────────────────────────────

    def register_role(self, role_id: str, description: str = "") -> Role:
        return self._graph.register(role_id, description)

    def get_role(self, role_id: str) -> Role:
        return self._graph.get(role_id)

    def find_role(self, role_id: str) -> Role | None:
        return self._graph.find(role_id)

    def role_exists(self, role_id: str) -> bool:
        return self._graph.exists(role_id)

    def roles(self) -> list[Role]:
        return self._graph.roles()

    def remove_role(self, role_id: str) -> None:
        self._graph.remove(role_id)

    def add_parent(self, child_id: str, parent_id: str) -> None:
        self._graph.add_parent(child_id, parent_id)

    def remove_parent(self, child_id: str, parent_id: str) -> None:
        self._graph.remove_parent(child_id, parent_id)

    def has_parent(self, role_id: str, parent_id: str) -> bool:
        return self._graph.has_parent(role_id, parent_id)

    def has_ancestor(self, role_id: str, ancestor_id: str) -> bool:
        return self._graph.has_ancestor(role_id, ancestor_id)

    def parents(self, role_id: str) -> list[Role]:
        return self._graph.parents(role_id)

    def ancestors(self, role_id: str) -> list[Role]:
        return self._graph.ancestors(role_id)

    # ── Grants ──────────────────────────────────────────

    def permit(self, role_id: str, permission: PermissionRef, *actions: str) -> None:
        self._engine.permit(role_id, permission, *actions)

    def revoke(self, role_id: str, permission: PermissionRef, *actions: str) -> None:
        self._engine.revoke(role_id, permission, *actions)

    def is_granted(self, role_id: str, permission: PermissionRef, *actions: str) -> bool:
        return self._engine.is_granted(role_id, permission, *actions)

    def is_grant_inherited(self, role_id: str, permission: PermissionRef, *actions: str) -> bool:
        return self._engine.is_grant_inherited(role_id, permission, *actions)

    def any_granted(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return self._engine.any_granted(role_ids, permission, *actions)

    def all_granted(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return self._engine.all_granted(role_ids, permission, *actions)

    def any_grant_inherited(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return self._engine.any_grant_inherited(role_ids, permission, *actions)

    def all_grant_inherited(self, role_ids: Iterable[str], permission: PermissionRef, *actions: str) -> bool:
        return self._engine.all_grant_inherited(role_ids, permission, *actions)

    def get_all_permissions(self, role_ids: Iterable[str]) -> dict[str, set[str]]:
        return self._engine.get_all_permissions(role_ids)

    # ── Snapshot ────────────────────────────────────────

    def role_grants(self) -> list[RoleGrants]:
        return [RoleGrants.from_role(role) for role in self._graph.roles()]

    def snapshot(self) -> Snapshot:
        return Snapshot(
            permissions=[PermissionRecord.from_permission(p) for p in self._catalog.permissions()],
            roles=self.role_grants(),
        )

    def serialize(self) -> bytes:
        """Dump the catalog and every role's granted actions and direct parents as JSON."""
        return self.snapshot().model_dump_json().encode("utf-8")

    def deserialize(self, data: bytes | str) -> None:
        """Restore roles from a snapshot produced by :meth:`serialize`.

        Pass 1 registers every role and replays its grants; pass 2 adds the
        parent edges, since a parent may appear later in the role list.

        On failure every role created by this call is removed again and a
        :class:`SnapshotError` naming the offending record is raised.
        """
        try:
            snapshot = Snapshot.model_validate_json(data)
        except ValidationError as e:
            self._diagnostics.error(Event.SNAPSHOT_FAILED, f"malformed snapshot: {e.error_count()} error(s)")
            raise SnapshotError(f"malformed snapshot: {e}") from e

        created: list[str] = []
        record: RoleGrants | None = None
        try:
            for record in snapshot.roles:
                self._graph.register(record.id, record.description)
                created.append(record.id)
                for permission_id, actions in record.grants.items():
                    perm = self._catalog.get(permission_id)
                    self._engine.permit(record.id, perm, *actions)

            for record in snapshot.roles:
                for parent_id in record.parents:
                    self._graph.add_parent(record.id, parent_id)
        except RoleGraphError as e:
            record_id = record.id if record is not None else None
            for role_id in reversed(created):
                self._graph.remove(role_id)
            self._diagnostics.error(
                Event.SNAPSHOT_FAILED,
                f"can not restore role {record_id}: {e.message}",
                role_id=record_id,
                error_code=e.code,
            )
            raise SnapshotError(
                f"can not restore role {record_id}: {e.message}",
                record=record_id,
                cause_code=e.code,
            ) from e

    def save_json(self, writer: IO[str]) -> None:
        """Write an indented snapshot to a text stream."""
        writer.write(self.snapshot().model_dump_json(indent=self._config.snapshot_indent))
        writer.write("\n")

    def load_json(self, reader: IO[str]) -> None:
        """Restore roles from a text stream written by :meth:`save_json`."""
        self.deserialize(reader.read())


__all__ = [
    "Registry",
]
