"""Exception hierarchy for rolegraph.

Every failure raised by the registry derives from RoleGraphError. This
module provides:
- The exception hierarchy with stable error codes
- ErrorRegistry for mapping codes back to classes
- gRPC status mapping for the interceptor layer

Usage:
    from rolegraph.exceptions import CycleError, RoleGraphError

    try:
        registry.add_parent("viewer", "admin")
    except CycleError as e:
        print(e.code, e.details)
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "RoleGraphError",
    "InvalidArgumentError",
    "DuplicateIDError",
    "NotFoundError",
    "RoleNotFoundError",
    "PermissionNotFoundError",
    "NilPermissionError",
    "UnknownActionError",
    "DuplicateEdgeError",
    "EdgeNotFoundError",
    "CycleError",
    "SnapshotError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # gRPC helpers
    "get_grpc_status_code",
]

# ---- Exception Hierarchy ----------------------------------------------------


class RoleGraphError(Exception):
    """Base exception for all registry failures.

    Attributes:
        code: Stable error code string (e.g. "CYCLE").
        message: Human-readable error description.
        details: Additional context as keyword arguments (role_id, permission_id, ...).
    """

    code: str = "ROLEGRAPH_ERROR"
    message: str = "A registry error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class InvalidArgumentError(RoleGraphError):
    """Malformed input such as an empty identifier."""

    code: str = "INVALID_ARGUMENT"


class DuplicateIDError(RoleGraphError):
    """A permission or role with this ID is already registered."""

    code: str = "DUPLICATE_ID"


class NotFoundError(RoleGraphError):
    """A role or permission ID is absent."""

    code: str = "NOT_FOUND"


class RoleNotFoundError(NotFoundError):
    code: str = "ROLE_NOT_FOUND"


class PermissionNotFoundError(NotFoundError):
    code: str = "PERMISSION_NOT_FOUND"


class NilPermissionError(RoleGraphError):
    """A grant/revoke call was given no permission."""

    code: str = "NIL_PERMISSION"
    message: str = "permission can not be None"


class UnknownActionError(RoleGraphError):
    """Action is not in the permission's allowed set."""

    code: str = "UNKNOWN_ACTION"


class DuplicateEdgeError(RoleGraphError):
    """Parent edge already exists."""

    code: str = "DUPLICATE_EDGE"


class EdgeNotFoundError(RoleGraphError):
    """Parent edge does not exist."""

    code: str = "EDGE_NOT_FOUND"


class CycleError(RoleGraphError):
    """Parent edge would make a role its own ancestor."""

    code: str = "CYCLE"


class SnapshotError(RoleGraphError):
    """A snapshot could not be parsed or restored.

    ``details["record"]`` names the role record that caused the failure,
    when there is one. The underlying error is chained as ``__cause__``.
    """

    code: str = "SNAPSHOT_ERROR"


# ---- Error Registry ---------------------------------------------------------

_E = TypeVar("_E", bound=type[RoleGraphError])


class ErrorRegistry:
    """Registry for mapping error codes to exception classes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[RoleGraphError]] = {}

    def register(self, code: str, error_cls: type[RoleGraphError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[RoleGraphError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[RoleGraphError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("QUOTA_EXCEEDED")
        class QuotaExceededError(RoleGraphError):
            code = "QUOTA_EXCEEDED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


for _cls in (
    RoleGraphError,
    InvalidArgumentError,
    DuplicateIDError,
    NotFoundError,
    RoleNotFoundError,
    PermissionNotFoundError,
    NilPermissionError,
    UnknownActionError,
    DuplicateEdgeError,
    EdgeNotFoundError,
    CycleError,
    SnapshotError,
):
    error_registry.register(_cls.code, _cls)
del _cls


# ---- gRPC Mapping -----------------------------------------------------------


def get_grpc_status_code(error: RoleGraphError) -> Any:
    """Map a RoleGraphError to a grpc.StatusCode.

    grpc is imported locally so the core stays importable without it loaded.
    """
    import grpc

    error_to_status = {
        "INVALID_ARGUMENT": grpc.StatusCode.INVALID_ARGUMENT,
        "DUPLICATE_ID": grpc.StatusCode.ALREADY_EXISTS,
        "DUPLICATE_EDGE": grpc.StatusCode.ALREADY_EXISTS,
        "NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "ROLE_NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "PERMISSION_NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "EDGE_NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "NIL_PERMISSION": grpc.StatusCode.INVALID_ARGUMENT,
        "UNKNOWN_ACTION": grpc.StatusCode.INVALID_ARGUMENT,
        "CYCLE": grpc.StatusCode.FAILED_PRECONDITION,
        "SNAPSHOT_ERROR": grpc.StatusCode.INVALID_ARGUMENT,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)
