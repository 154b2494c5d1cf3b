"""Seed the permission catalog and default roles.

Usage:
    uv run python -m scripts.seed_rbac --system
    uv run python -m scripts.seed_rbac <tenant_id_or_code>
--system seeds the catalog and the system roles; a tenant argument seeds the
catalog and that tenant's default roles. Cached permission maps affected by
the seed are invalidated after commit.
"""

import asyncio
import sys

from rbac_engine.core.config import get_settings
from rbac_engine.infrastructure.cache import CacheService, PermissionMapCache
from rbac_engine.infrastructure.persistence.database import get_session_factory
from rbac_engine.infrastructure.persistence.repositories.directory_repo import (
    DirectoryRepository,
)
from rbac_engine.infrastructure.services.policy_seeder import PolicySeeder
from rbac_engine.shared.telemetry.logging import setup_logging


async def _invalidate(tenant_id: str | None) -> None:
    settings = get_settings()
    cache_service = CacheService()
    await cache_service.connect()
    try:
        cache = PermissionMapCache(cache_service, ttl=settings.cache_ttl_permissions)
        if tenant_id is None:
            await cache.invalidate_all()
        else:
            await cache.invalidate_tenant(tenant_id)
    finally:
        await cache_service.disconnect()


async def main() -> None:
    """Seed system roles or one tenant's roles."""
    if len(sys.argv) < 2:
        print(
            "Usage: uv run python -m scripts.seed_rbac (--system | <tenant_id_or_code>)",
            file=sys.stderr,
        )
        sys.exit(1)
    arg = sys.argv[1]
    setup_logging()
    session_factory = get_session_factory()

    tenant_id: str | None = None
    async with session_factory() as session:
        async with session.begin():
            seeder = PolicySeeder(session)
            if arg == "--system":
                roles = await seeder.seed_system_roles()
            else:
                directory = DirectoryRepository(session)
                tenant = await directory.get_tenant(arg) or await directory.get_tenant_by_code(arg)
                if not tenant:
                    print(f"Tenant not found: {arg}", file=sys.stderr)
                    sys.exit(1)
                tenant_id = tenant.id
                roles = await seeder.seed_tenant_roles(tenant.id)
    await _invalidate(tenant_id)
    for role in roles:
        print(f"Seeded {role.code} ({role.id})")


if __name__ == "__main__":
    asyncio.run(main())
