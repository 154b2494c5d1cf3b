"""Directory repository: read-only tenant and principal lookups."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.application.dtos.directory import TenantResult, UserResult
from rbac_engine.infrastructure.persistence.models.tenant import Tenant
from rbac_engine.infrastructure.persistence.models.user import User


class DirectoryRepository:
    """Tenant and user status reads. The engine never writes these tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_tenant(self, tenant_id: str) -> TenantResult | None:
        result = await self.db.execute(select(Tenant).where(Tenant.id == tenant_id))
        t = result.scalar_one_or_none()
        if t is None:
            return None
        return TenantResult(id=t.id, code=t.code, name=t.name, status=t.status)

    async def get_tenant_by_code(self, code: str) -> TenantResult | None:
        result = await self.db.execute(select(Tenant).where(Tenant.code == code))
        t = result.scalar_one_or_none()
        if t is None:
            return None
        return TenantResult(id=t.id, code=t.code, name=t.name, status=t.status)

    async def get_user(self, user_id: str) -> UserResult | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        u = result.scalar_one_or_none()
        if u is None:
            return None
        return UserResult(id=u.id, tenant_id=u.tenant_id, email=u.email, status=u.status)
