"""gRPC interceptor that authorizes RPCs against a rolegraph registry.

Provides:
- ``EnforcementMode``: three-state toggle: off / warn / enforce.
- ``extract_roles``: caller role IDs from invocation metadata.
- ``check_roles``: standalone any-role grant check.
- ``RoleGrantInterceptor``: server interceptor mapping RPCs to grants.

The registry knows nothing about sessions or transports; this module is the
seam where a caller's role list (put into metadata by an upstream
authenticator) meets ``Registry.any_granted``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

import grpc

from .registry import Registry

logger = logging.getLogger(__name__)


# ── Enforcement Mode ────────────────────────────────────────────


class EnforcementMode(str, Enum):
    """Three-state enforcement toggle.

    - ``off``: no checks, only caller logging.
    - ``warn``: check grants, log denials as WARNING, let the call through.
    - ``enforce``: check grants, abort denied calls.

    Set via env ``ROLEGRAPH_ENFORCEMENT=off|warn|enforce``.
    """

    OFF = "off"
    WARN = "warn"
    ENFORCE = "enforce"

    @classmethod
    def from_env(cls) -> EnforcementMode:
        """Read from ``ROLEGRAPH_ENFORCEMENT`` env var (default: warn)."""
        import os

        raw = os.environ.get("ROLEGRAPH_ENFORCEMENT", "warn").strip().lower()
        try:
            return cls(raw)
        except ValueError:
            logger.warning("Unknown ROLEGRAPH_ENFORCEMENT=%r, defaulting to 'warn'", raw)
            return cls.WARN


# Method prefixes that bypass grant checks
_SKIP_PREFIXES = (
    "grpc.health.v1",
    "grpc.reflection.v1",
)


# ── Helpers ──────────────────────────────────────────────────────


def _extract_rpc_name(full_method: str) -> str:
    """``/users.UserService/Delete`` → ``Delete``"""
    return full_method.rsplit("/", 1)[-1] if "/" in full_method else full_method


def _should_skip(method: str) -> bool:
    return any(prefix in method for prefix in _SKIP_PREFIXES)


def extract_roles(metadata: Iterable[tuple[str, Any]] | None, key: str = "x-roles") -> list[str]:
    """Collect role IDs from gRPC metadata.

    The key may appear several times; each value is a comma-separated list.
    Empty items are dropped and order is kept.
    """
    roles: list[str] = []
    for meta_key, value in metadata or ():
        if meta_key.lower() != key:
            continue
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        for item in str(value).split(","):
            role_id = item.strip()
            if role_id and role_id not in roles:
                roles.append(role_id)
    return roles


def check_roles(
    registry: Registry,
    role_ids: Sequence[str],
    permission_id: str,
    actions: Sequence[str] = (),
) -> str | None:
    """Check if any of ``role_ids`` is granted ``actions`` on ``permission_id``.

    Returns:
        None if allowed, or a human-readable denial reason.
    """
    if not role_ids:
        return "no roles"
    if registry.any_granted(role_ids, permission_id, *actions):
        return None
    wanted = ",".join(actions) or "*"
    return f"roles {list(role_ids)} lack {permission_id}:{wanted}"


# ── Interceptor ─────────────────────────────────────────────────


class RoleGrantInterceptor(grpc.aio.ServerInterceptor):
    """gRPC server interceptor enforcing per-RPC grants.

    Sits before all handlers and:
    1. Logs the RPC and the caller's roles (always)
    2. Reads role IDs from the ``roles_metadata_key`` metadata entry
    3. Maps the RPC name to ``(permission_id, actions)`` via ``rpc_grants``
    4. Allows the call if any role is granted (``Registry.any_granted``)
    5. Otherwise aborts with ``UNAUTHENTICATED`` (no roles) or ``PERMISSION_DENIED``

    Unmapped RPCs are denied (fail-closed).

    Args:
        registry: Registry answering grant queries.
        rpc_grants: RPC name → (permission ID, actions required).
        service_name: Name used in log lines.
        enforcement: off / warn / enforce. Defaults to ``ROLEGRAPH_ENFORCEMENT``.
        roles_metadata_key: Metadata key; defaults to ``registry.config.roles_metadata_key``.

    Usage::

        interceptor = RoleGrantInterceptor(
            registry,
            {"DeleteUser": ("users", ("delete",)), "GetUser": ("users", ("read",))},
            service_name="Users",
            enforcement=EnforcementMode.ENFORCE,
        )
        server = grpc.aio.server(interceptors=[interceptor])
    """

    def __init__(
        self,
        registry: Registry,
        rpc_grants: Mapping[str, tuple[str, Sequence[str]]],
        *,
        service_name: str = "Service",
        enforcement: EnforcementMode | None = None,
        roles_metadata_key: str | None = None,
    ) -> None:
        self._registry = registry
        self._rpc_grants = dict(rpc_grants)
        self._service_name = service_name
        self._mode = enforcement if enforcement is not None else EnforcementMode.from_env()
        self._roles_key = (roles_metadata_key or registry.config.roles_metadata_key).lower()

        if self._mode != EnforcementMode.OFF:
            logger.info("%s interceptor mode: %s", self._service_name, self._mode.value)

    async def intercept_service(
        self,
        continuation: Any,
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        method = handler_call_details.method or ""
        if _should_skip(method):
            return await continuation(handler_call_details)

        rpc_name = _extract_rpc_name(method)
        role_ids = extract_roles(handler_call_details.invocation_metadata, self._roles_key)

        logger.info("%s RPC %s | roles=%s", self._service_name, rpc_name, role_ids or "none")

        if self._mode == EnforcementMode.OFF:
            return await continuation(handler_call_details)

        required = self._rpc_grants.get(rpc_name)
        deny_reason: str | None = None
        deny_code = grpc.StatusCode.PERMISSION_DENIED

        if required is None:
            deny_reason = "RPC not mapped to a permission"
        elif not role_ids:
            deny_reason = f"no roles (requires {required[0]})"
            deny_code = grpc.StatusCode.UNAUTHENTICATED
        else:
            permission_id, actions = required
            deny_reason = check_roles(self._registry, role_ids, permission_id, tuple(actions))

        if deny_reason is None:
            logger.debug("%s ALLOWED '%s' for roles %s", self._service_name, rpc_name, role_ids)
            return await continuation(handler_call_details)

        if self._mode == EnforcementMode.WARN:
            logger.warning(
                "%s WARN_DENIED '%s': %s (would block in enforce mode)",
                self._service_name,
                rpc_name,
                deny_reason,
            )
            return await continuation(handler_call_details)

        logger.warning("%s DENIED '%s': %s", self._service_name, rpc_name, deny_reason)

        deny_msg = f"{self._service_name}: {rpc_name} denied: {deny_reason}"
        deny_status = deny_code

        async def _denied(request, context):
            await context.abort(deny_status, deny_msg)

        return grpc.unary_unary_rpc_method_handler(_denied)


__all__ = [
    "EnforcementMode",
    "RoleGrantInterceptor",
    "check_roles",
    "extract_roles",
]
