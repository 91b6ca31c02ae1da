"""Tests for the exception hierarchy and error registry."""

from __future__ import annotations

import grpc
import pytest
from rolegraph import (
    Action,
    CycleError,
    DuplicateEdgeError,
    DuplicateIDError,
    EdgeNotFoundError,
    InvalidArgumentError,
    NilPermissionError,
    NotFoundError,
    PermissionNotFoundError,
    RecordingDiagnostics,
    Registry,
    RoleGraphError,
    RoleNotFoundError,
    SnapshotError,
    UnknownActionError,
)
from rolegraph.exceptions import error_registry, get_grpc_status_code, register_error


class TestHierarchy:
    """Tests for exception classes."""

    @pytest.mark.parametrize(
        "error_cls",
        [
            InvalidArgumentError,
            DuplicateIDError,
            RoleNotFoundError,
            PermissionNotFoundError,
            NilPermissionError,
            UnknownActionError,
            DuplicateEdgeError,
            EdgeNotFoundError,
            CycleError,
            SnapshotError,
        ],
    )
    def test_all_derive_from_base(self, error_cls: type[RoleGraphError]) -> None:
        assert issubclass(error_cls, RoleGraphError)

    def test_not_found_family(self) -> None:
        """Test role and permission lookups share a catchable parent."""
        assert issubclass(RoleNotFoundError, NotFoundError)
        assert issubclass(PermissionNotFoundError, NotFoundError)

    def test_message_code_details(self) -> None:
        err = CycleError("circular", role_id="viewer", parent_id="admin")
        assert str(err) == "circular"
        assert err.message == "circular"
        assert err.code == "CYCLE"
        assert err.details == {"role_id": "viewer", "parent_id": "admin"}

    def test_default_message(self) -> None:
        assert NilPermissionError().message == "permission can not be None"

    def test_code_override(self) -> None:
        assert RoleGraphError("x", code="CUSTOM").code == "CUSTOM"


class TestErrorRegistry:
    """Tests for code → class lookup."""

    def test_builtin_codes_registered(self) -> None:
        assert error_registry.get("CYCLE") is CycleError
        assert error_registry.get("ROLE_NOT_FOUND") is RoleNotFoundError
        assert error_registry.get("SNAPSHOT_ERROR") is SnapshotError
        assert error_registry.get("NOPE") is None

    def test_register_error_decorator(self) -> None:
        @register_error("QUOTA_EXCEEDED")
        class QuotaExceededError(RoleGraphError):
            code = "QUOTA_EXCEEDED"

        assert error_registry.get("QUOTA_EXCEEDED") is QuotaExceededError
        assert "QUOTA_EXCEEDED" in error_registry.all()


class TestGrpcMapping:
    """Tests for get_grpc_status_code."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (DuplicateIDError("dup"), grpc.StatusCode.ALREADY_EXISTS),
            (DuplicateEdgeError("dup"), grpc.StatusCode.ALREADY_EXISTS),
            (RoleNotFoundError("missing"), grpc.StatusCode.NOT_FOUND),
            (EdgeNotFoundError("missing"), grpc.StatusCode.NOT_FOUND),
            (UnknownActionError("bad"), grpc.StatusCode.INVALID_ARGUMENT),
            (CycleError("loop"), grpc.StatusCode.FAILED_PRECONDITION),
            (SnapshotError("broken"), grpc.StatusCode.INVALID_ARGUMENT),
            (RoleGraphError("other"), grpc.StatusCode.INTERNAL),
        ],
    )
    def test_status(self, error: RoleGraphError, status: grpc.StatusCode) -> None:
        assert get_grpc_status_code(error) == status


class TestFailuresLeaveStateUnchanged:
    """Rejected mutations have no partial effects."""

    @pytest.fixture
    def registry(self) -> Registry:
        reg = Registry(RecordingDiagnostics())
        reg.register_permission("users", "User resource", Action.CRUD)
        reg.register_role("admin", "Admin role")
        reg.register_role("viewer", "Viewer role")
        reg.add_parent("admin", "viewer")
        reg.permit("admin", "users", Action.READ)
        return reg

    def test_rejected_mutations(self, registry: Registry) -> None:
        before = registry.serialize()
        attempts = [
            lambda: registry.register_permission("users", "again", Action.READ),
            lambda: registry.register_role("admin", "again"),
            lambda: registry.add_parent("viewer", "admin"),
            lambda: registry.add_parent("admin", "viewer"),
            lambda: registry.remove_parent("viewer", "admin"),
            lambda: registry.permit("admin", "users", Action.DELETE, "approve"),
            lambda: registry.revoke("admin", "users", Action.READ, "approve"),
            lambda: registry.permit("admin", None, Action.READ),
            lambda: registry.permit("ghost", "users", Action.READ),
            lambda: registry.remove_role("ghost"),
        ]
        for attempt in attempts:
            with pytest.raises(RoleGraphError):
                attempt()
        assert registry.serialize() == before
