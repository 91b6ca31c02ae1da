"""Tests for grant mutation and resolution."""

from __future__ import annotations

import pytest
from rolegraph import (
    Action,
    NilPermissionError,
    PermissionNotFoundError,
    RecordingDiagnostics,
    Registry,
    RoleNotFoundError,
    UnknownActionError,
)


@pytest.fixture
def sink() -> RecordingDiagnostics:
    return RecordingDiagnostics()


@pytest.fixture
def registry(sink: RecordingDiagnostics) -> Registry:
    """users (crud), posts (crud + approve), reports (read, download)."""
    reg = Registry(sink)
    reg.register_permission("users", "User resource", Action.CRUD)
    reg.register_permission("posts", "Post resource", Action.CRUD, "approve")
    reg.register_permission("reports", "Report resource", Action.READ, Action.DOWNLOAD)
    return reg


@pytest.fixture
def chain(registry: Registry, sink: RecordingDiagnostics) -> Registry:
    """A -> B -> C where only C holds users:read."""
    for role_id in ("A", "B", "C"):
        registry.register_role(role_id, f"Role {role_id}")
    registry.add_parent("A", "B")
    registry.add_parent("B", "C")
    registry.permit("C", "users", Action.READ)
    sink.clear()
    return registry


class TestPermit:
    """Tests for permit."""

    def test_crud_grant(self, registry: Registry) -> None:
        """Granting crud grants every base action and only those."""
        registry.register_role("admin", "Admin role")
        users = registry.get_permission("users")
        registry.permit("admin", users, Action.CRUD)

        assert registry.is_granted("admin", users, Action.CRUD)
        for action in Action.BASE:
            assert registry.is_granted("admin", users, action)
        assert not registry.is_granted("admin", "posts", Action.READ)

    def test_permit_by_id(self, registry: Registry) -> None:
        registry.register_role("editor")
        registry.permit("editor", "posts", Action.READ, "approve")
        assert registry.is_granted("editor", "posts", "approve", Action.READ)

    def test_unknown_action_grants_nothing(self, registry: Registry, sink: RecordingDiagnostics) -> None:
        """A request with one invalid action fails as a whole."""
        registry.register_role("editor")
        with pytest.raises(UnknownActionError) as exc_info:
            registry.permit("editor", "users", Action.READ, "approve")
        assert exc_info.value.details["action"] == "approve"
        assert not registry.get_role("editor").has_grant_entry("users")
        assert not registry.is_granted("editor", "users", Action.READ)
        assert "unknown_action" in sink.events("error")

    def test_empty_action_rejected(self, registry: Registry) -> None:
        registry.register_role("editor")
        with pytest.raises(UnknownActionError):
            registry.permit("editor", "users", Action.NONE)

    def test_nil_permission(self, registry: Registry, sink: RecordingDiagnostics) -> None:
        registry.register_role("editor")
        with pytest.raises(NilPermissionError):
            registry.permit("editor", None, Action.READ)
        assert sink.events() == ["nil_permission"]

    def test_unknown_permission(self, registry: Registry) -> None:
        registry.register_role("editor")
        with pytest.raises(PermissionNotFoundError):
            registry.permit("editor", "ghost", Action.READ)

    def test_unknown_role(self, registry: Registry) -> None:
        with pytest.raises(RoleNotFoundError):
            registry.permit("ghost", "users", Action.READ)

    def test_no_actions_is_noop(self, registry: Registry) -> None:
        registry.register_role("editor")
        registry.permit("editor", "users")
        assert not registry.get_role("editor").has_grant_entry("users")

    def test_permit_is_additive(self, registry: Registry) -> None:
        registry.register_role("editor")
        registry.permit("editor", "posts", Action.READ)
        registry.permit("editor", "posts", Action.UPDATE)
        assert registry.is_granted("editor", "posts", Action.READ, Action.UPDATE)


class TestRevoke:
    """Tests for revoke."""

    def test_partial_revoke_keeps_entry(self, registry: Registry) -> None:
        registry.register_role("admin")
        registry.permit("admin", "users", Action.CRUD)
        registry.revoke("admin", "users", Action.DELETE)

        role = registry.get_role("admin")
        assert role.action_flags("users") == {
            "create": True,
            "read": True,
            "update": True,
            "delete": False,
        }
        assert registry.is_granted("admin", "users", Action.READ)
        assert not registry.is_granted("admin", "users", Action.DELETE)
        assert not registry.is_granted("admin", "users", Action.CRUD)

    def test_revoke_to_zero_drops_entry(self, registry: Registry, sink: RecordingDiagnostics) -> None:
        """Revoking the last granted action removes the whole entry."""
        registry.register_role("admin")
        registry.permit("admin", "users", Action.READ, Action.UPDATE)
        registry.revoke("admin", "users", Action.READ)
        assert registry.get_role("admin").has_grant_entry("users")

        registry.revoke("admin", "users", Action.UPDATE)
        role = registry.get_role("admin")
        assert not role.has_grant_entry("users")
        assert role.action_flags("users") == {}
        assert "grant_dropped" in sink.events("debug")

    def test_revoke_crud(self, registry: Registry) -> None:
        registry.register_role("admin")
        registry.permit("admin", "users", Action.CRUD)
        registry.revoke("admin", "users", Action.CRUD)
        assert not registry.get_role("admin").has_grant_entry("users")
        assert not registry.is_granted("admin", "users")

    def test_revoke_unknown_action(self, registry: Registry) -> None:
        registry.register_role("admin")
        registry.permit("admin", "users", Action.CRUD)
        with pytest.raises(UnknownActionError):
            registry.revoke("admin", "users", Action.DELETE, "approve")
        assert registry.is_granted("admin", "users", Action.DELETE)

    def test_revoke_without_entry(self, registry: Registry) -> None:
        registry.register_role("admin")
        registry.revoke("admin", "users", Action.READ)
        assert not registry.get_role("admin").has_grant_entry("users")

    def test_revoke_nil_permission(self, registry: Registry) -> None:
        registry.register_role("admin")
        with pytest.raises(NilPermissionError):
            registry.revoke("admin", None, Action.READ)


class TestIsGranted:
    """Tests for direct-parent resolution."""

    def test_own_grant(self, chain: Registry) -> None:
        assert chain.is_granted("C", "users", Action.READ)

    def test_direct_parent_grant(self, chain: Registry) -> None:
        assert chain.is_granted("B", "users", Action.READ)

    def test_grandparent_grant_not_visible(self, chain: Registry, sink: RecordingDiagnostics) -> None:
        assert not chain.is_granted("A", "users", Action.READ)
        assert sink.events() == ["action_not_granted"]

    def test_empty_action_needs_entry_only(self, chain: Registry) -> None:
        assert chain.is_granted("C", "users")
        assert chain.is_granted("C", "users", Action.NONE)
        assert not chain.is_granted("C", "posts")

    def test_undeclared_action_is_false(self, chain: Registry, sink: RecordingDiagnostics) -> None:
        assert not chain.is_granted("C", "users", "approve")
        assert sink.events("error") == ["unknown_action"]

    def test_nil_permission_is_false(self, chain: Registry, sink: RecordingDiagnostics) -> None:
        assert not chain.is_granted("C", None, Action.READ)
        assert sink.events() == ["nil_permission"]

    def test_unknown_permission_is_false(self, chain: Registry, sink: RecordingDiagnostics) -> None:
        assert not chain.is_granted("C", "ghost", Action.READ)
        assert sink.events() == ["permission_not_found"]

    def test_unknown_role_is_false(self, chain: Registry, sink: RecordingDiagnostics) -> None:
        assert not chain.is_granted("ghost", "users", Action.READ)
        assert sink.events() == ["role_not_found"]

    def test_actions_must_share_a_scope(self, registry: Registry) -> None:
        """read from one parent plus update from another is not enough."""
        for role_id in ("child", "reader", "writer"):
            registry.register_role(role_id)
        registry.add_parent("child", "reader")
        registry.add_parent("child", "writer")
        registry.permit("reader", "posts", Action.READ)
        registry.permit("writer", "posts", Action.UPDATE)

        assert registry.is_granted("child", "posts", Action.READ)
        assert registry.is_granted("child", "posts", Action.UPDATE)
        assert not registry.is_granted("child", "posts", Action.READ, Action.UPDATE)

    def test_revoked_in_child_still_granted_by_parent(self, registry: Registry) -> None:
        registry.register_role("child")
        registry.register_role("parent")
        registry.add_parent("child", "parent")
        registry.permit("parent", "reports", Action.READ)
        registry.permit("child", "reports", Action.READ, Action.DOWNLOAD)
        registry.revoke("child", "reports", Action.READ)
        assert registry.is_granted("child", "reports", Action.READ)


class TestIsGrantInherited:
    """Tests for full-ancestry resolution."""

    def test_grandparent_grant_visible(self, chain: Registry) -> None:
        assert chain.is_grant_inherited("A", "users", Action.READ)
        assert chain.is_grant_inherited("B", "users", Action.READ)
        assert chain.is_grant_inherited("C", "users", Action.READ)

    def test_not_granted_anywhere(self, chain: Registry) -> None:
        assert not chain.is_grant_inherited("A", "users", Action.DELETE)

    def test_unknown_role_is_false(self, chain: Registry) -> None:
        assert not chain.is_grant_inherited("ghost", "users", Action.READ)

    def test_edge_removal_cuts_inheritance(self, chain: Registry) -> None:
        chain.remove_parent("B", "C")
        assert not chain.is_grant_inherited("A", "users", Action.READ)
        assert not chain.is_granted("B", "users", Action.READ)

    def test_role_removal_cuts_inheritance(self, chain: Registry) -> None:
        """Removing C severs B from it; A and B lose the grant."""
        chain.remove_role("C")
        assert not chain.has_parent("B", "C")
        assert not chain.is_grant_inherited("A", "users", Action.READ)
        assert not chain.is_grant_inherited("B", "users", Action.READ)
        assert chain.role_exists("B")


class TestAggregates:
    """Tests for any/all variants."""

    @pytest.fixture
    def roles(self, registry: Registry) -> Registry:
        registry.register_role("admin")
        registry.register_role("viewer")
        registry.permit("admin", "users", Action.CRUD)
        registry.permit("viewer", "users", Action.READ)
        return registry

    def test_any_granted(self, roles: Registry) -> None:
        assert roles.any_granted(["admin", "viewer"], "users", Action.UPDATE)
        assert not roles.any_granted(["viewer"], "users", Action.UPDATE)

    def test_all_granted(self, roles: Registry) -> None:
        assert not roles.all_granted(["admin", "viewer"], "users", Action.UPDATE)
        assert roles.all_granted(["admin", "viewer"], "users", Action.READ)

    def test_unknown_role_in_list(self, roles: Registry) -> None:
        assert roles.any_granted(["ghost", "admin"], "users", Action.DELETE)
        assert not roles.all_granted(["ghost", "admin"], "users", Action.READ)

    def test_empty_role_list(self, roles: Registry) -> None:
        assert not roles.any_granted([], "users", Action.READ)
        assert roles.all_granted([], "users", Action.READ)
        assert not roles.any_grant_inherited([], "users", Action.READ)
        assert roles.all_grant_inherited([], "users", Action.READ)

    def test_inherited_variants(self, chain: Registry) -> None:
        chain.register_role("loner")
        assert chain.any_grant_inherited(["loner", "A"], "users", Action.READ)
        assert not chain.all_grant_inherited(["loner", "A"], "users", Action.READ)
        assert chain.all_grant_inherited(["A", "B", "C"], "users", Action.READ)


class TestGetAllPermissions:
    """Tests for flattening grants."""

    def test_own_and_direct_parent(self, chain: Registry) -> None:
        chain.permit("B", "posts", "approve")
        assert chain.get_all_permissions(["B"]) == {"users": {"read"}, "posts": {"approve"}}

    def test_grandparent_not_included(self, chain: Registry) -> None:
        assert chain.get_all_permissions(["A"]) == {}

    def test_union_over_roles(self, chain: Registry) -> None:
        chain.permit("A", "users", Action.CREATE)
        chain.permit("A", "reports", Action.DOWNLOAD)
        result = chain.get_all_permissions(["A", "B"])
        assert result == {"users": {"create", "read"}, "reports": {"download"}}

    def test_revoked_actions_omitted(self, chain: Registry) -> None:
        chain.permit("C", "users", Action.UPDATE)
        chain.revoke("C", "users", Action.READ)
        assert chain.get_all_permissions(["C"]) == {"users": {"update"}}

    def test_unknown_roles_skipped(self, chain: Registry, sink: RecordingDiagnostics) -> None:
        assert chain.get_all_permissions(["ghost", "C"]) == {"users": {"read"}}
        assert sink.events() == ["role_not_found"]
