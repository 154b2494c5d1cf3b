"""Permission repository: the catalog capabilities stored as rows."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.application.dtos.permission import PermissionResult
from rbac_engine.infrastructure.persistence.models.permission import Permission
from rbac_engine.infrastructure.persistence.repositories.base import BaseRepository


def permission_to_result(p: Permission) -> PermissionResult:
    return PermissionResult(
        id=p.id, resource=p.resource, action=p.action, description=p.description
    )


class PermissionRepository(BaseRepository[Permission]):
    """Permission rows, unique per (resource, action)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Permission)

    async def get_by_resource_action(self, resource: str, action: str) -> Permission | None:
        result = await self.db.execute(
            select(Permission).where(
                Permission.resource == resource, Permission.action == action
            )
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[PermissionResult]:
        result = await self.db.execute(
            select(Permission).order_by(Permission.resource, Permission.action)
        )
        return [permission_to_result(p) for p in result.scalars().all()]

    async def ensure(
        self, resource: str, action: str, description: str | None = None
    ) -> tuple[Permission, bool]:
        """Return the permission row, creating it if missing. Second item is True when created."""
        existing = await self.get_by_resource_action(resource, action)
        if existing is not None:
            return existing, False
        created = await self.create(
            Permission(resource=resource, action=action, description=description)
        )
        return created, True
