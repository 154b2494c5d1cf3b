"""Default roles and access matrix for the school ERP catalog.

Seeds the permission catalog, the two system roles, and the ten default
roles of each tenant, expanding every (role, module, level) entry of the
access matrix through level_to_policy. All seeding is idempotent: existing
permissions, roles and policies are left as they are.
"""

from __future__ import annotations

import logging
from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.application.dtos.role import RoleResult, UserRoleResult
from rbac_engine.domain import catalog
from rbac_engine.domain.enums import ConditionOperator, PermissionLevel
from rbac_engine.domain.exceptions import ResourceNotFoundException, ValidationException
from rbac_engine.domain.policy import Condition, actions_for_level, level_to_policy
from rbac_engine.domain.value_objects import RoleKey, normalize_legacy_role_name
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

logger = logging.getLogger(__name__)


class RoleData(TypedDict):
    """Default role definition."""

    name: str
    description: str


SYSTEM_ROLES: list[RoleData] = [
    {"name": "Super Admin", "description": "Cross-tenant system administrator (SaaS)"},
    {
        "name": "Support Engineer",
        "description": "SaaS support staff with cross-tenant access",
    },
]

TENANT_ROLES: list[RoleData] = [
    {"name": "School Admin", "description": "School administrator with full control"},
    {
        "name": "Principal",
        "description": "School principal with academic and admin oversight",
    },
    {
        "name": "Teacher",
        "description": "Teacher with access to classes, attendance, and grades",
    },
    {"name": "Accountant", "description": "Finance and accounting staff"},
    {"name": "HR Manager", "description": "Human Resources manager"},
    {"name": "Librarian", "description": "Library management staff"},
    {"name": "Transport Manager", "description": "Transport and logistics manager"},
    {"name": "Hostel Warden", "description": "Hostel management staff"},
    {"name": "Parent", "description": "Parent with limited access to child records"},
    {"name": "Student", "description": "Student with access to own records and LMS"},
]

# Module order: tenant_management, school_config, user_management, students,
# admissions, fees, attendance_students, attendance_staff, timetable, exams,
# communication, transport, library, hostel, hr_payroll, inventory, lms,
# analytics, technical_ops, data_export. Modules not listed get no policy.
_N, _R, _L, _F = "none", "read", "limited", "full"


def _row(*levels: str) -> dict[str, str]:
    modules = list(catalog.MODULES)
    if len(levels) != len(modules):
        raise ValueError(f"Access matrix row needs {len(modules)} levels, got {len(levels)}")
    return {m: level for m, level in zip(modules, levels) if level != _N}


ACCESS_MATRIX: dict[str, dict[str, str]] = {
    "Super Admin": _row(_F, _F, _F, _R, _R, _R, _R, _R, _R, _R, _L, _R, _R, _R, _R, _R, _R, _F, _F, _F),
    "Support Engineer": _row(_F, _R, _R, _R, _R, _R, _R, _R, _R, _R, _R, _R, _R, _R, _R, _R, _R, _F, _F, _F),
    "School Admin": _row(_L, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _F, _L, _L),
    "Principal": _row(_N, _R, _L, _F, _F, _R, _F, _R, _F, _F, _F, _R, _R, _R, _R, _R, _R, _F, _N, _L),
    "Teacher": _row(_N, _R, _N, _L, _L, _R, _F, _N, _R, _L, _L, _R, _R, _N, _R, _N, _F, _L, _N, _N),
    "Accountant": _row(_R, _R, _L, _R, _R, _F, _R, _R, _N, _N, _L, _R, _N, _R, _F, _R, _N, _F, _N, _L),
    "HR Manager": _row(_N, _R, _L, _N, _N, _R, _R, _F, _N, _N, _L, _N, _N, _N, _F, _N, _N, _L, _N, _L),
    "Librarian": _row(_N, _R, _N, _L, _N, _R, _N, _N, _N, _R, _L, _N, _F, _N, _N, _L, _R, _L, _N, _N),
    "Transport Manager": _row(_N, _R, _N, _L, _N, _R, _L, _L, _N, _N, _L, _F, _N, _N, _N, _N, _N, _L, _N, _N),
    "Hostel Warden": _row(_N, _R, _N, _L, _N, _R, _L, _N, _N, _N, _L, _N, _N, _F, _N, _N, _N, _L, _N, _N),
    "Parent": _row(_N, _N, _N, _L, _L, _L, _L, _N, _R, _R, _L, _R, _R, _R, _N, _N, _R, _L, _N, _L),
    "Student": _row(_N, _N, _N, _L, _L, _L, _L, _N, _R, _R, _L, _R, _R, _R, _N, _N, _F, _L, _N, _N),
}

# Ownership predicates for limited grants that differ from the module default.
LIMITED_CONDITIONS: dict[tuple[str, str], tuple[Condition, ...]] = {
    ("Teacher", "students"): (Condition("teacherId", ConditionOperator.EQ, "userId"),),
    ("Parent", "students"): (Condition("parentIds", ConditionOperator.CONTAINS, "userId"),),
    ("Student", "students"): (Condition("userId", ConditionOperator.EQ, "userId"),),
}


def role_key_for(name: str, tenant_id: str | None = None) -> RoleKey:
    """Role key of a default role name ("School Admin" -> ...:SCHOOL_ADMIN)."""
    return RoleKey(slug=normalize_legacy_role_name(name), tenant_id=tenant_id)


class PolicySeeder:
    """Creates the permission catalog and default roles with their policies.

    Runs inside the caller's transaction; never commits.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.permissions = PermissionRepository(db)
        self.roles = RoleRepository(db)
        self.role_permissions = RolePermissionRepository(db)

    async def seed_catalog(self) -> int:
        """Insert missing catalog permissions. Returns how many were created."""
        created = 0
        for module, action in catalog.iter_capabilities():
            _, was_created = await self.permissions.ensure(
                module.resource, action, module.describe(action)
            )
            created += int(was_created)
        logger.info("Permission catalog seeded (%d created)", created)
        return created

    async def seed_system_roles(self) -> list[RoleResult]:
        """Create Super Admin and Support Engineer with their access-matrix policies."""
        await self.seed_catalog()
        return [await self._seed_role(data, tenant_id=None) for data in SYSTEM_ROLES]

    async def seed_tenant_roles(self, tenant_id: str) -> list[RoleResult]:
        """Create the default roles of a tenant with their access-matrix policies.

        Raises:
            ResourceNotFoundException: If the tenant does not exist.
        """
        if await DirectoryRepository(self.db).get_tenant(tenant_id) is None:
            raise ResourceNotFoundException("tenant", tenant_id)
        await self.seed_catalog()
        return [await self._seed_role(data, tenant_id=tenant_id) for data in TENANT_ROLES]

    async def _seed_role(self, data: RoleData, tenant_id: str | None) -> RoleResult:
        key = role_key_for(data["name"], tenant_id)
        role = await self.roles.get_by_code(str(key))
        if role is None:
            role = await self.roles.create_role(key, data["name"], data["description"])
            logger.info("Created role %s", role.code)
        for resource, level in ACCESS_MATRIX.get(data["name"], {}).items():
            await self._seed_module(role, data["name"], resource, PermissionLevel(level))
        return role

    async def _seed_module(
        self, role: RoleResult, role_name: str, resource: str, level: PermissionLevel
    ) -> None:
        conditions = ()
        if level == PermissionLevel.LIMITED:
            conditions = LIMITED_CONDITIONS.get((role_name, resource), ())
        for action in actions_for_level(resource, level):
            permission = await self.permissions.get_by_resource_action(resource, action)
            if permission is None or await self.role_permissions.get(role.id, permission.id):
                continue
            policy = level_to_policy(
                level,
                resource,
                action,
                system_role=role.is_system_role,
                conditions=conditions,
            )
            await self.role_permissions.upsert(role.id, permission.id, level, policy)

    async def import_legacy_assignment(
        self, user_id: str, tenant_id: str, legacy_role_name: str
    ) -> UserRoleResult:
        """Assign a role given by a legacy free-text name ("school admin", "SCHOOL_ADMIN").

        The tenant's role with that slug is preferred; otherwise the system
        role is used (granted globally).

        Raises:
            ValidationException: If the name has no usable characters.
            ResourceNotFoundException: If no tenant or system role matches.
            DuplicateAssignmentException: If the user already holds the role.
        """
        try:
            slug = normalize_legacy_role_name(legacy_role_name)
        except ValueError as e:
            raise ValidationException(str(e), field="role") from e
        role = await self.roles.get_by_code(str(RoleKey.for_tenant(tenant_id, slug)))
        assignment_tenant: str | None = tenant_id
        if role is None:
            role = await self.roles.get_by_code(str(RoleKey.system(slug)))
            assignment_tenant = None
        if role is None:
            raise ResourceNotFoundException("role", legacy_role_name)
        result = await UserRoleRepository(self.db).assign_role_to_user(
            user_id, role.id, assignment_tenant
        )
        logger.info(
            "Imported legacy role %r for user %s as %s", legacy_role_name, user_id, role.code
        )
        return result
