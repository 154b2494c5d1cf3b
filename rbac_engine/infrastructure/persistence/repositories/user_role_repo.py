"""UserRole repository: user–role assignments."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.application.dtos.role import ResolvedRole, RoleHolder, UserRoleResult
from rbac_engine.domain.exceptions import DuplicateAssignmentException
from rbac_engine.infrastructure.persistence.models.permission import UserRole
from rbac_engine.infrastructure.persistence.models.role import Role
from rbac_engine.shared.context import get_current_actor_id
from rbac_engine.shared.utils.datetime import ensure_utc, utc_now


def user_role_to_result(ur: UserRole) -> UserRoleResult:
    return UserRoleResult(
        id=ur.id,
        user_id=ur.user_id,
        role_id=ur.role_id,
        tenant_id=ur.tenant_id,
        assigned_by=ur.assigned_by,
        assigned_at=ensure_utc(ur.assigned_at),
        expires_at=ensure_utc(ur.expires_at),
    )


def _tenant_match(column: Any, tenant_id: str | None) -> ColumnElement[bool]:
    return column.is_(None) if tenant_id is None else column == tenant_id


class UserRoleRepository:
    """User–role link table. Assign/remove, resolve roles, list holders."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_active_roles(self, user_id: str, tenant_id: str) -> list[ResolvedRole]:
        """Roles the user holds in the tenant context.

        Tenant roles count only when both the assignment and the role belong to
        the tenant. System roles count in every tenant. Inactive roles and
        expired assignments are skipped.
        """
        now = utc_now()
        result = await self.db.execute(
            select(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(
                UserRole.user_id == user_id,
                Role.is_active.is_(True),
                or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
                or_(
                    Role.is_system_role.is_(True),
                    and_(UserRole.tenant_id == tenant_id, Role.tenant_id == tenant_id),
                ),
            )
            .distinct()
        )
        return [
            ResolvedRole(
                id=r.id,
                code=r.code,
                tenant_id=r.tenant_id,
                is_system_role=r.is_system_role,
            )
            for r in result.scalars().all()
        ]

    async def get_assignment(
        self, user_id: str, role_id: str, tenant_id: str | None
    ) -> UserRole | None:
        result = await self.db.execute(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
                _tenant_match(UserRole.tenant_id, tenant_id),
            )
        )
        return result.scalar_one_or_none()

    async def assign_role_to_user(
        self,
        user_id: str,
        role_id: str,
        tenant_id: str | None,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserRoleResult:
        """Create an assignment; assigned_by defaults to the current actor.

        Raises:
            DuplicateAssignmentException: If the same (user, role, tenant) exists.
        """
        if await self.get_assignment(user_id, role_id, tenant_id) is not None:
            raise DuplicateAssignmentException(
                "Role already assigned to user",
                assignment_type="user_role",
                details_extra={"user_id": user_id, "role_id": role_id, "tenant_id": tenant_id},
            )
        ur = UserRole(
            tenant_id=tenant_id,
            user_id=user_id,
            role_id=role_id,
            assigned_by=assigned_by or get_current_actor_id(),
            expires_at=expires_at,
        )
        try:
            self.db.add(ur)
            await self.db.flush()
        except IntegrityError:
            raise DuplicateAssignmentException(
                "Role already assigned to user",
                assignment_type="user_role",
                details_extra={"user_id": user_id, "role_id": role_id, "tenant_id": tenant_id},
            ) from None
        return user_role_to_result(ur)

    async def remove_role_from_user(
        self, user_id: str, role_id: str, tenant_id: str | None
    ) -> bool:
        ur = await self.get_assignment(user_id, role_id, tenant_id)
        if not ur:
            return False
        await self.db.delete(ur)
        await self.db.flush()
        return True

    async def get_role_holders(self, role_id: str) -> list[RoleHolder]:
        """Every (user, assignment tenant) holding the role, expired or not."""
        result = await self.db.execute(
            select(UserRole.user_id, UserRole.tenant_id)
            .where(UserRole.role_id == role_id)
            .distinct()
        )
        return [RoleHolder(user_id=u, tenant_id=t) for u, t in result.all()]
