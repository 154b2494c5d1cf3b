"""Role repository. Read methods return RoleResult (DTO); entity getters return ORM for writes."""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.application.dtos.role import RoleResult
from rbac_engine.domain.exceptions import DuplicateAssignmentException, ValidationException
from rbac_engine.domain.value_objects import RoleKey
from rbac_engine.infrastructure.persistence.models.role import Role
from rbac_engine.infrastructure.persistence.repositories.base import BaseRepository


def role_to_result(r: Role) -> RoleResult:
    """Map ORM Role to application RoleResult."""
    return RoleResult(
        id=r.id,
        tenant_id=r.tenant_id,
        code=r.code,
        name=r.name,
        description=r.description,
        is_system_role=r.is_system_role,
        is_active=r.is_active,
    )


class RoleRepository(BaseRepository[Role]):
    """Role repository. Role codes are rendered RoleKeys and globally unique."""

    resource_type = "role"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Role)

    async def create_role(
        self,
        key: RoleKey,
        name: str,
        description: str | None = None,
        *,
        is_active: bool = True,
    ) -> RoleResult:
        """Create a role from its key; system keys make system roles.

        Raises:
            ValidationException: If the name is blank.
            DuplicateAssignmentException: If the role code already exists.
        """
        if not name or not name.strip():
            raise ValidationException("Role name must be non-empty", field="name")
        role = Role(
            tenant_id=key.tenant_id,
            code=str(key),
            name=name.strip(),
            description=description,
            is_system_role=key.is_system,
            is_active=is_active,
        )
        try:
            created = await self.create(role)
        except IntegrityError:
            raise DuplicateAssignmentException(
                "Role code already exists",
                assignment_type="role",
                details_extra={"code": str(key)},
            ) from None
        return role_to_result(created)

    async def get_entity_by_code(self, code: str) -> Role | None:
        result = await self.db.execute(select(Role).where(Role.code == code))
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> RoleResult | None:
        row = await self.get_entity_by_code(code)
        return role_to_result(row) if row else None

    async def get_by_tenant(
        self,
        tenant_id: str,
        *,
        include_system: bool = False,
        include_inactive: bool = False,
    ) -> list[RoleResult]:
        """Roles owned by a tenant, optionally with the system roles usable there."""
        if include_system:
            q = select(Role).where(
                or_(Role.tenant_id == tenant_id, Role.is_system_role.is_(True))
            )
        else:
            q = select(Role).where(Role.tenant_id == tenant_id)
        if not include_inactive:
            q = q.where(Role.is_active.is_(True))
        result = await self.db.execute(q.order_by(Role.code))
        return [role_to_result(r) for r in result.scalars().all()]

    async def get_system_roles(self) -> list[RoleResult]:
        result = await self.db.execute(
            select(Role).where(Role.is_system_role.is_(True)).order_by(Role.code)
        )
        return [role_to_result(r) for r in result.scalars().all()]

    async def set_active(self, role_id: str, active: bool) -> RoleResult | None:
        """Activate or deactivate a role; None if it does not exist."""
        role = await self.get_by_id(role_id)
        if role is None:
            return None
        role.is_active = active
        return role_to_result(await self.save(role))
