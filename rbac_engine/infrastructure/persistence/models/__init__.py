"""Persistence models: ORM entities and mixins."""

from rbac_engine.infrastructure.persistence.models.authorization_audit import (
    AuthorizationAudit,
)
from rbac_engine.infrastructure.persistence.models.mixins import (
    CuidMixin,
    MultiTenantModel,
    TenantMixin,
    TimestampMixin,
)
from rbac_engine.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
    UserRole,
)
from rbac_engine.infrastructure.persistence.models.role import Role
from rbac_engine.infrastructure.persistence.models.tenant import Tenant
from rbac_engine.infrastructure.persistence.models.user import User

__all__ = [
    "CuidMixin",
    "TenantMixin",
    "TimestampMixin",
    "MultiTenantModel",
    "Tenant",
    "User",
    "Role",
    "Permission",
    "RolePermission",
    "UserRole",
    "AuthorizationAudit",
]
