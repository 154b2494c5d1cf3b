"""Policy store write surface: roles, role policies and role assignments.

Every write runs in its own transaction. After the transaction commits, the
cached permission maps of every user holding the affected role are
invalidated before the call returns, so the next decision reads the new
policies.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rbac_engine.application.dtos.permission import (
    ModulePermissions,
    PermissionResult,
    RolePermissionResult,
)
from rbac_engine.application.dtos.role import RoleHolder, RoleResult, UserRoleResult
from rbac_engine.domain import catalog
from rbac_engine.domain.enums import PermissionLevel, Scope
from rbac_engine.domain.exceptions import (
    ConfigurationError,
    ResourceNotFoundException,
    ValidationException,
)
from rbac_engine.domain.policy import (
    Policy,
    actions_for_level,
    infer_level,
    level_to_policy,
)
from rbac_engine.domain.value_objects import RoleKey, normalize_legacy_role_name
from rbac_engine.infrastructure.persistence.models.role import Role
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
from rbac_engine.shared.context import get_current_actor
from rbac_engine.shared.utils.datetime import is_expired

if TYPE_CHECKING:
    from rbac_engine.application.interfaces.services import IPermissionMapCache

logger = logging.getLogger(__name__)

# A level name ("full"), a Policy, or a mapping {effect, scope, conditions, level?}.
PolicyValue = PermissionLevel | str | Policy | Mapping[str, Any] | None


def _parse_level(value: Any) -> PermissionLevel:
    try:
        return PermissionLevel(value)
    except ValueError as e:
        raise ValidationException(
            f"Unknown permission level: {value!r} (allowed: {PermissionLevel.values()})",
            field="level",
        ) from e


def _check_allow(policy: Policy, *, system_role: bool) -> None:
    if policy.scope == Scope.NONE:
        raise ValidationException("Allow policy requires a scope other than none", field="scope")
    if policy.scope == Scope.ALL and not system_role:
        raise ValidationException("Scope all is reserved for system roles", field="scope")


def resolve_policy_value(
    value: PolicyValue,
    resource: str,
    action: str,
    *,
    system_role: bool,
) -> tuple[PermissionLevel, Policy] | None:
    """Turn admin input into the (level, policy) to store; None means remove the row.

    Level names expand through level_to_policy. Explicit policies keep their
    effect, scope and conditions; their level is taken from the input or
    inferred. An explicit deny is stored as a deny with scope none.

    Raises:
        ValidationException: If the level is unknown, does not grant the action,
            or the policy is malformed or not allowed for this role.
    """
    if value is None:
        return None
    if isinstance(value, Policy):
        policy, raw_level = value, None
    elif isinstance(value, Mapping):
        try:
            policy = Policy.from_dict(value)
        except ConfigurationError as e:
            raise ValidationException(e.message, field="policy") from e
        raw_level = value.get("level")
    else:
        level = _parse_level(value)
        if level == PermissionLevel.NONE:
            return None
        return level, level_to_policy(level, resource, action, system_role=system_role)

    if policy.is_deny:
        return PermissionLevel.NONE, Policy.deny()
    _check_allow(policy, system_role=system_role)
    level = infer_level(policy) if raw_level is None else _parse_level(raw_level)
    if level == PermissionLevel.NONE:
        raise ValidationException("Level none cannot carry an allow policy", field="level")
    return level, policy


class PolicyAdminService:
    """Administrative writes against the policy store."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        permission_cache: IPermissionMapCache | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._permission_cache = permission_cache

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    async def _get_role(self, session: AsyncSession, role_id: str) -> Role:
        return await RoleRepository(session).require(role_id)

    # ---- Reads ----

    async def list_roles(self, tenant_id: str | None = None) -> list[RoleResult]:
        """System roles, or the roles usable in a tenant (its own plus system roles)."""
        async with self._session_factory() as session:
            roles = RoleRepository(session)
            if tenant_id is None:
                return await roles.get_system_roles()
            return await roles.get_by_tenant(
                tenant_id, include_system=True, include_inactive=True
            )

    async def list_permissions(self) -> list[PermissionResult]:
        """Catalog permissions stored so far, ordered by resource and action."""
        async with self._session_factory() as session:
            return await PermissionRepository(session).list_all()

    async def get_role_permissions(self, role_id: str) -> list[ModulePermissions]:
        """Every catalog module with each action's level for the role ('none' when unassigned)."""
        async with self._session_factory() as session:
            await self._get_role(session, role_id)
            rows = await RolePermissionRepository(session).get_for_role(role_id)
        levels = {(p.resource, p.action): rp.level for p, rp in rows}
        return [
            ModulePermissions(
                resource=module.resource,
                label=module.label,
                actions={
                    action: levels.get((module.resource, action), PermissionLevel.NONE.value)
                    for action in module.actions
                },
            )
            for module in catalog.MODULES.values()
        ]

    # ---- Role policies ----

    async def set_permission(
        self,
        role_id: str,
        resource: str,
        action: str,
        value: PolicyValue,
    ) -> RolePermissionResult | None:
        """Set the role's policy for one capability.

        ``value`` is a level name or an explicit policy. Level ``none`` (or None)
        removes the row, leaving an implicit deny. Returns None when removed.

        Raises:
            ConfigurationError: If the capability is not in the catalog.
            ResourceNotFoundException: If the role does not exist.
            ValidationException: If the value is invalid for the role or action.
        """
        catalog.require(resource, action)
        async with self._transaction() as session:
            role = await self._get_role(session, role_id)
            result = await self._write(session, role, resource, action, value)
            holders = await UserRoleRepository(session).get_role_holders(role_id)
            system_role = role.is_system_role
        await self._invalidate_holders(holders, system_role)
        logger.info(
            "Role %s policy for %s:%s set to %s by %s",
            role_id,
            resource,
            action,
            result.level.value if result else PermissionLevel.NONE.value,
            get_current_actor(),
        )
        return result

    async def set_module_permissions(
        self,
        role_id: str,
        resource: str,
        action_levels: Mapping[str, PolicyValue],
    ) -> ModulePermissions:
        """Replace the role's policies for one module.

        Actions missing from ``action_levels`` are removed.

        Raises:
            ConfigurationError: If the module or an action is not in the catalog.
            ResourceNotFoundException: If the role does not exist.
            ValidationException: If a value is invalid for the role or action.
        """
        module = catalog.get_module(resource)
        for action in action_levels:
            catalog.require(resource, action)
        async with self._transaction() as session:
            role = await self._get_role(session, role_id)
            for action in module.actions:
                await self._write(session, role, resource, action, action_levels.get(action))
            holders = await UserRoleRepository(session).get_role_holders(role_id)
            system_role = role.is_system_role
            view = await self._module_view(session, role_id, module)
        await self._invalidate_holders(holders, system_role)
        logger.info(
            "Role %s policies for module %s replaced by %s", role_id, resource, get_current_actor()
        )
        return view

    async def apply_module_level(
        self,
        role_id: str,
        resource: str,
        level: PermissionLevel | str,
    ) -> ModulePermissions:
        """Set a coarse level on a module; actions the level does not grant are removed."""
        parsed = _parse_level(level)
        granted = actions_for_level(resource, parsed)
        module = catalog.get_module(resource)
        return await self.set_module_permissions(
            role_id,
            resource,
            {action: parsed.value for action in module.actions if action in granted},
        )

    async def set_allow_all_for_module(
        self, role_id: str, resource: str, allow_all: bool
    ) -> ModulePermissions:
        """Grant full on every action of the module, or remove all of them."""
        return await self.apply_module_level(
            role_id,
            resource,
            PermissionLevel.FULL if allow_all else PermissionLevel.NONE,
        )

    async def _write(
        self,
        session: AsyncSession,
        role: Role,
        resource: str,
        action: str,
        value: PolicyValue,
    ) -> RolePermissionResult | None:
        resolved = resolve_policy_value(
            value, resource, action, system_role=role.is_system_role
        )
        module = catalog.get_module(resource)
        permission, _ = await PermissionRepository(session).ensure(
            resource, action, module.describe(action)
        )
        rp_repo = RolePermissionRepository(session)
        if resolved is None:
            await rp_repo.remove(role.id, permission.id)
            return None
        level, policy = resolved
        await rp_repo.upsert(role.id, permission.id, level, policy)
        return RolePermissionResult(
            role_id=role.id, resource=resource, action=action, level=level, policy=policy
        )

    async def _module_view(
        self, session: AsyncSession, role_id: str, module: catalog.ModuleDefinition
    ) -> ModulePermissions:
        rows = await RolePermissionRepository(session).get_for_role(role_id)
        levels = {p.action: rp.level for p, rp in rows if p.resource == module.resource}
        return ModulePermissions(
            resource=module.resource,
            label=module.label,
            actions={a: levels.get(a, PermissionLevel.NONE.value) for a in module.actions},
        )

    # ---- Roles ----

    async def create_role(
        self,
        name: str,
        *,
        tenant_id: str | None = None,
        slug: str | None = None,
        description: str | None = None,
        is_active: bool = True,
    ) -> RoleResult:
        """Create a role. Without tenant_id it is a system role usable in every tenant.

        The slug defaults to the normalized name ("HR Manager" -> HR_MANAGER).

        Raises:
            ValidationException: If the name or slug is invalid.
            ResourceNotFoundException: If tenant_id does not exist.
            DuplicateAssignmentException: If the role key already exists.
        """
        try:
            key = RoleKey(
                slug=slug or normalize_legacy_role_name(name), tenant_id=tenant_id
            )
        except ValueError as e:
            raise ValidationException(str(e), field="slug") from e
        async with self._transaction() as session:
            if tenant_id is not None:
                if await DirectoryRepository(session).get_tenant(tenant_id) is None:
                    raise ResourceNotFoundException("tenant", tenant_id)
            created = await RoleRepository(session).create_role(
                key, name, description, is_active=is_active
            )
        logger.info("Role created: %s (%s) by %s", created.code, created.id, get_current_actor())
        return created

    async def set_role_active(self, role_id: str, active: bool) -> RoleResult:
        """Activate or deactivate a role. Inactive roles are never resolved."""
        async with self._transaction() as session:
            result = await RoleRepository(session).set_active(role_id, active)
            if result is None:
                raise ResourceNotFoundException("role", role_id)
            holders = await UserRoleRepository(session).get_role_holders(role_id)
        await self._invalidate_holders(holders, result.is_system_role)
        logger.info("Role %s active=%s by %s", role_id, active, get_current_actor())
        return result

    # ---- Assignments ----

    async def assign_role(
        self,
        user_id: str,
        role_id: str,
        tenant_id: str | None,
        *,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserRoleResult:
        """Grant a role to a user.

        Tenant roles must be assigned in their own tenant. System roles may be
        granted globally (tenant_id None) or recorded against a tenant; either
        way they apply in every tenant.

        Raises:
            ResourceNotFoundException: If the role, user or tenant does not exist.
            ValidationException: If the tenant does not match the role or
                expires_at is already past.
            DuplicateAssignmentException: If the assignment already exists.
        """
        if expires_at is not None and is_expired(expires_at):
            raise ValidationException("expires_at must be in the future", field="expires_at")
        async with self._transaction() as session:
            role = await self._get_role(session, role_id)
            if not role.is_system_role and tenant_id != role.tenant_id:
                raise ValidationException(
                    f"Role {role.code} can only be assigned in tenant {role.tenant_id}",
                    field="tenant_id",
                )
            directory = DirectoryRepository(session)
            if await directory.get_user(user_id) is None:
                raise ResourceNotFoundException("user", user_id)
            if tenant_id is not None and await directory.get_tenant(tenant_id) is None:
                raise ResourceNotFoundException("tenant", tenant_id)
            result = await UserRoleRepository(session).assign_role_to_user(
                user_id, role_id, tenant_id, assigned_by=assigned_by, expires_at=expires_at
            )
            system_role = role.is_system_role
        await self._invalidate_holders([RoleHolder(user_id, tenant_id)], system_role)
        logger.info(
            "Role %s assigned to user %s in tenant %s by %s",
            role_id,
            user_id,
            tenant_id,
            result.assigned_by or get_current_actor(),
        )
        return result

    async def revoke_role(self, user_id: str, role_id: str, tenant_id: str | None) -> bool:
        """Remove an assignment. Returns False if there was none."""
        async with self._transaction() as session:
            role = await self._get_role(session, role_id)
            removed = await UserRoleRepository(session).remove_role_from_user(
                user_id, role_id, tenant_id
            )
            system_role = role.is_system_role
        if removed:
            await self._invalidate_holders([RoleHolder(user_id, tenant_id)], system_role)
            logger.info(
                "Role %s revoked from user %s in tenant %s by %s",
                role_id,
                user_id,
                tenant_id,
                get_current_actor(),
            )
        return removed

    # ---- Cache ----

    async def _invalidate_holders(
        self, holders: Iterable[RoleHolder], system_role: bool
    ) -> None:
        """Drop cached maps; system roles and global grants affect every tenant."""
        if self._permission_cache is None:
            return
        for holder in holders:
            if system_role or holder.tenant_id is None:
                await self._permission_cache.invalidate_user(holder.user_id)
            else:
                await self._permission_cache.invalidate(holder.user_id, holder.tenant_id)
