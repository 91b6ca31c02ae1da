"""Wire models for registry snapshots.

These are Pydantic models describing the JSON document produced by
``Registry.serialize()``::

    {
      "permissions": [{"id": ..., "description": ..., "actions": [...]}],
      "roles": [{"id": ..., "description": ..., "grants": {...}, "parents": [...]}]
    }

The ``permissions`` section is a full catalog dump kept for reference; a
restore only replays ``roles`` against the catalog of the target registry.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .catalog import Permission
from .role import Role


class PermissionRecord(BaseModel):
    """A catalog entry with its full allowed-action list."""

    id: str
    description: str = ""
    actions: list[str] = Field(default_factory=list)

    @classmethod
    def from_permission(cls, permission: Permission) -> PermissionRecord:
        return cls(id=permission.id, description=permission.description, actions=sorted(permission.actions))


class RoleGrants(BaseModel):
    """Serialized view of one role: granted actions and direct parents only."""

    id: str
    description: str = ""
    grants: dict[str, list[str]] = Field(default_factory=dict)
    parents: list[str] = Field(default_factory=list)

    @classmethod
    def from_role(cls, role: Role) -> RoleGrants:
        return cls(
            id=role.id,
            description=role.description,
            grants=role.grants(),
            parents=role.parent_ids(),
        )


class Snapshot(BaseModel):
    """Complete registry state."""

    permissions: list[PermissionRecord] = Field(default_factory=list)
    roles: list[RoleGrants] = Field(default_factory=list)


__all__ = [
    "PermissionRecord",
    "RoleGrants",
    "Snapshot",
]
