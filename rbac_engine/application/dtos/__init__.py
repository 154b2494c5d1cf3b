"""Application DTOs (read-models and request/response values, no ORM)."""

from rbac_engine.application.dtos.authorization import (
    DecisionAuditEntry,
    FilterContract,
    UserContext,
)
from rbac_engine.application.dtos.directory import TenantResult, UserResult
from rbac_engine.application.dtos.permission import (
    ModulePermissions,
    PermissionResult,
    PolicyRecord,
    RolePermissionResult,
)
from rbac_engine.application.dtos.role import (
    ResolvedRole,
    RoleHolder,
    RoleResult,
    UserRoleResult,
)

__all__ = [
    "UserContext",
    "FilterContract",
    "DecisionAuditEntry",
    "TenantResult",
    "UserResult",
    "PermissionResult",
    "PolicyRecord",
    "RolePermissionResult",
    "ModulePermissions",
    "RoleResult",
    "ResolvedRole",
    "RoleHolder",
    "UserRoleResult",
]
