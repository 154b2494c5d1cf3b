"""RolePermission repository: the policy a role holds for each permission."""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.application.dtos.permission import PolicyRecord
from rbac_engine.domain.enums import PermissionLevel
from rbac_engine.domain.exceptions import ConfigurationError
from rbac_engine.domain.policy import Policy
from rbac_engine.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from rbac_engine.infrastructure.persistence.models.role import Role


def policy_from_row(rp: RolePermission) -> Policy:
    """Build the domain policy from a stored row.

    Raises:
        ConfigurationError: If effect, scope or conditions are malformed.
    """
    try:
        return Policy.from_dict(
            {"effect": rp.effect, "scope": rp.scope, "conditions": rp.conditions}
        )
    except ConfigurationError as e:
        e.details.setdefault("role_id", rp.role_id)
        e.details.setdefault("permission_id", rp.permission_id)
        raise


def level_from_row(rp: RolePermission) -> PermissionLevel:
    try:
        return PermissionLevel(rp.level)
    except ValueError as e:
        raise ConfigurationError(
            f"Malformed permission level: {rp.level!r}",
            {"role_id": rp.role_id, "permission_id": rp.permission_id},
        ) from e


class RolePermissionRepository:
    """Role–permission link table with policy columns. One row per (role, permission)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, role_id: str, permission_id: str) -> RolePermission | None:
        result = await self.db.execute(
            select(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_role(self, role_id: str) -> list[tuple[Permission, RolePermission]]:
        result = await self.db.execute(
            select(Permission, RolePermission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.resource, Permission.action)
        )
        return [(p, rp) for p, rp in result.all()]

    async def upsert(
        self,
        role_id: str,
        permission_id: str,
        level: PermissionLevel,
        policy: Policy,
    ) -> RolePermission:
        """Create or replace the role's policy for a permission."""
        rp = await self.get(role_id, permission_id)
        if rp is None:
            rp = RolePermission(role_id=role_id, permission_id=permission_id)
            self.db.add(rp)
        rp.level = level.value
        rp.effect = policy.effect.value
        rp.scope = policy.scope.value
        rp.conditions = [c.to_dict() for c in policy.conditions] or None
        await self.db.flush()
        return rp

    async def remove(self, role_id: str, permission_id: str) -> bool:
        """Delete the role's policy for a permission. Returns False if there was none."""
        rp = await self.get(role_id, permission_id)
        if rp is None:
            return False
        await self.db.delete(rp)
        await self.db.flush()
        return True

    async def get_policy_records(
        self,
        role_ids: Collection[str],
        resource: str | None = None,
        action: str | None = None,
    ) -> list[PolicyRecord]:
        """Policies of the given roles joined with role code and capability."""
        if not role_ids:
            return []
        q = (
            select(Role.code, Permission.resource, Permission.action, RolePermission)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(RolePermission.role_id.in_(list(role_ids)))
        )
        if resource is not None:
            q = q.where(Permission.resource == resource)
        if action is not None:
            q = q.where(Permission.action == action)
        result = await self.db.execute(q)
        return [
            PolicyRecord(
                role_id=rp.role_id,
                role_code=role_code,
                resource=res,
                action=act,
                level=level_from_row(rp),
                policy=policy_from_row(rp),
            )
            for role_code, res, act, rp in result.all()
        ]
