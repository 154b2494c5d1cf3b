"""Repositories: session-bound data access for the policy store."""

from rbac_engine.infrastructure.persistence.repositories.base import BaseRepository
from rbac_engine.infrastructure.persistence.repositories.directory_repo import (
    DirectoryRepository,
)
from rbac_engine.infrastructure.persistence.repositories.permission_repo import (
    PermissionRepository,
)
from rbac_engine.infrastructure.persistence.repositories.role_permission_repo import (
    RolePermissionRepository,
)
from rbac_engine.infrastructure.persistence.repositories.role_repo import RoleRepository
from rbac_engine.infrastructure.persistence.repositories.user_role_repo import (
    UserRoleRepository,
)

__all__ = [
    "BaseRepository",
    "DirectoryRepository",
    "PermissionRepository",
    "RolePermissionRepository",
    "RoleRepository",
    "UserRoleRepository",
]
