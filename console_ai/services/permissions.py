"""Role based permission gate for platform modules."""

from collections.abc import Mapping, Sequence
from typing import Literal

from console_ai.utils.logging import get_logger

logger = get_logger(__name__)

Module = Literal["crm", "erp", "pm", "kb", "content", "support", "admin", "portal", "chat"]
Permission = Literal["read", "write", "delete", "approve", "admin"]

# module -> permissions granted for that module, replacing the role default
TenantOverrides = Mapping[str, Sequence[str]]

ROLES = (
    "ADMIN",
    "DIR_COMMERCIALE",
    "DIR_TECNICO",
    "DIR_SUPPORT",
    "COMMERCIALE",
    "PM",
    "DEVELOPER",
    "CONTENT",
    "SUPPORT",
    "CLIENT",
)

_ALL = frozenset({"read", "write", "delete", "approve", "admin"})
_RW = frozenset({"read", "write"})
_R = frozenset({"read"})
_CHAT_ADMIN = frozenset({"read", "write", "admin"})

ROLE_PERMISSIONS: dict[str, dict[str, frozenset[str]]] = {
    "ADMIN": {
        "crm": _ALL,
        "erp": _ALL,
        "pm": _ALL,
        "kb": _ALL,
        "content": _ALL,
        "support": _ALL,
        "admin": _ALL,
        "portal": _ALL,
        "chat": _CHAT_ADMIN,
    },
    "DIR_COMMERCIALE": {
        "crm": _ALL,
        "erp": _ALL,
        "pm": _RW,
        "kb": _R,
        "content": _R,
        "support": _R,
        "admin": _R,
        "chat": _CHAT_ADMIN,
    },
    "DIR_TECNICO": {
        "pm": _ALL,
        "content": _ALL,
        "crm": _R,
        "erp": _R,
        "kb": _R,
        "support": _R,
        "admin": _R,
        "chat": _CHAT_ADMIN,
    },
    "DIR_SUPPORT": {
        "support": _ALL,
        "crm": _RW,
        "pm": _RW,
        "erp": _R,
        "kb": _R,
        "content": _R,
        "admin": _R,
        "chat": _CHAT_ADMIN,
    },
    "COMMERCIALE": {
        "crm": _RW,
        "erp": _RW,
        "pm": frozenset({"read", "write", "delete"}),
        "kb": _R,
        "support": _R,
        "content": _RW,
        "chat": _RW,
    },
    "PM": {
        "pm": frozenset({"read", "write", "approve"}),
        "kb": _R,
        "crm": _R,
        "support": _R,
        "content": _RW,
        "chat": _RW,
    },
    "DEVELOPER": {
        "pm": _RW,
        "kb": _R,
        "support": _R,
        "content": _R,
        "chat": _RW,
    },
    "CONTENT": {
        "content": _RW,
        "pm": _RW,
        "kb": _R,
        "chat": _RW,
    },
    "SUPPORT": {
        "support": _RW,
        "crm": _R,
        "kb": _R,
        "pm": _RW,
        "content": _RW,
        "chat": _RW,
    },
    "CLIENT": {
        "portal": _RW,
    },
}


class PermissionGate:
    """Decides whether a role may perform an action on a module.

    Tenant overrides are layered on top of the role defaults: when an override lists a
    module, its permission list replaces the role's permissions for that module.
    """

    def __init__(self, matrix: Mapping[str, Mapping[str, frozenset[str]]] | None = None):
        self._matrix = matrix if matrix is not None else ROLE_PERMISSIONS

    def permissions_for(self, role: str, module: str, overrides: TenantOverrides | None = None) -> frozenset[str]:
        """Return the effective permissions of a role on a module."""
        if overrides and module in overrides:
            return frozenset(overrides[module])
        return self._matrix.get(role, {}).get(module, frozenset())

    def has_permission(
        self, role: str, module: str, permission: str, overrides: TenantOverrides | None = None
    ) -> bool:
        return permission in self.permissions_for(role, module, overrides)

    def summarize(self, role: str, overrides: TenantOverrides | None = None) -> str:
        """Human readable summary of a role's access, used in the system prompt."""
        modules = sorted(set(self._matrix.get(role, {})) | set(overrides or {}))
        parts = []
        for module in modules:
            perms = self.permissions_for(role, module, overrides)
            if perms:
                parts.append(f"{module}: {', '.join(sorted(perms))}")
        return "; ".join(parts) if parts else "none"
