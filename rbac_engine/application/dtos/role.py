"""DTOs for roles and role assignments (no dependency on ORM)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RoleResult:
    """Role read-model (result of create_role, get_by_code, get_by_tenant, etc.)."""

    id: str
    tenant_id: str | None
    code: str
    name: str
    description: str | None
    is_system_role: bool
    is_active: bool


@dataclass(frozen=True)
class ResolvedRole:
    """Role held by a user in one tenant context (output of the role resolver)."""

    id: str
    code: str
    tenant_id: str | None
    is_system_role: bool


@dataclass(frozen=True)
class UserRoleResult:
    """Role assignment read-model."""

    id: str
    user_id: str
    role_id: str
    tenant_id: str | None
    assigned_by: str | None
    assigned_at: datetime
    expires_at: datetime | None


@dataclass(frozen=True)
class RoleHolder:
    """(user, assignment tenant) pair holding a role; tenant is None for global grants."""

    user_id: str
    tenant_id: str | None
