"""Permission map cache (implements IPermissionMapCache) over ICacheService.

Maps are stored under rbac:permissions:<tenant>:<user> as
``{"version": <stamp>, "permissions": {"resource:action": decision.to_dict()}}``.
The stamp joins the generation values covering (tenant, user); every
invalidation writes a fresh generation before dropping keys, so a map
stamped earlier is never served again. A payload that fails to decode is
dropped and treated as a miss.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from rbac_engine.domain.exceptions import ConfigurationError
from rbac_engine.domain.policy import Decision, PermissionMap
from rbac_engine.infrastructure.cache.keys import (
    all_generation_key,
    all_permissions_pattern,
    generation_keys,
    pair_generation_key,
    permission_key,
    tenant_generation_key,
    tenant_permissions_pattern,
    user_generation_key,
    user_permissions_pattern,
)
from rbac_engine.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from rbac_engine.application.interfaces.services import ICacheService

logger = logging.getLogger(__name__)


def _stamp(generations: Sequence[Any]) -> str:
    return "|".join("" if g is None else str(g) for g in generations)


class PermissionMapCache:
    """Caches resolved permission maps; all operations no-op when the backend is down."""

    def __init__(self, cache: ICacheService | None, ttl: int = 300) -> None:
        self.cache = cache
        self.ttl = ttl
        # Outlives any map stamped before the bump.
        self.generation_ttl = 2 * ttl

    def _usable(self) -> bool:
        return self.cache is not None and self.cache.is_available()

    async def version(self, user_id: str, tenant_id: str) -> str | None:
        """Current generation stamp for (tenant, user); None when the backend is down."""
        if not self._usable():
            return None
        return _stamp(await self.cache.get_many(list(generation_keys(tenant_id, user_id))))

    async def get(self, user_id: str, tenant_id: str) -> PermissionMap | None:
        if not self._usable():
            return None
        key = permission_key(tenant_id, user_id)
        raw, *generations = await self.cache.get_many(
            [key, *generation_keys(tenant_id, user_id)]
        )
        if raw is None:
            return None
        try:
            version, permissions = _decode(raw)
        except ConfigurationError:
            logger.warning("Discarding undecodable permission map at %s", key)
            await self.cache.delete(key)
            return None
        if version != _stamp(generations):
            logger.debug("Ignoring permission map at %s stamped before an invalidation", key)
            return None
        return permissions

    async def set(
        self,
        user_id: str,
        tenant_id: str,
        permissions: PermissionMap,
        version: str | None = None,
    ) -> None:
        """Cache a map built from the store.

        version is the stamp read before the map was loaded. When an
        invalidation has moved the generations since, the map may predate
        the write and is not cached.
        """
        current = await self.version(user_id, tenant_id)
        if current is None:
            return
        key = permission_key(tenant_id, user_id)
        if version is not None and version != current:
            logger.debug("Not caching %s: invalidated while loading", key)
            return
        await self.cache.set(
            key,
            {
                "version": current,
                "permissions": {code: d.to_dict() for code, d in permissions.items()},
            },
            ttl=self.ttl,
        )

    async def _bump(self, generation_key: str) -> None:
        await self.cache.set(generation_key, generate_cuid(), ttl=self.generation_ttl)

    async def invalidate(self, user_id: str, tenant_id: str) -> None:
        if self._usable():
            await self._bump(pair_generation_key(tenant_id, user_id))
            await self.cache.delete(permission_key(tenant_id, user_id))

    async def invalidate_user(self, user_id: str) -> None:
        if self._usable():
            await self._bump(user_generation_key(user_id))
            await self.cache.delete_pattern(user_permissions_pattern(user_id))

    async def invalidate_tenant(self, tenant_id: str) -> None:
        if self._usable():
            await self._bump(tenant_generation_key(tenant_id))
            await self.cache.delete_pattern(tenant_permissions_pattern(tenant_id))

    async def invalidate_all(self) -> None:
        if self._usable():
            await self._bump(all_generation_key())
            await self.cache.delete_pattern(all_permissions_pattern())


def _decode(raw: Any) -> tuple[str, PermissionMap]:
    if not isinstance(raw, dict) or not isinstance(raw.get("permissions"), dict):
        raise ConfigurationError("Cached permission map must be an object")
    version = raw.get("version")
    if not isinstance(version, str):
        raise ConfigurationError("Cached permission map has no version stamp")
    permissions = {
        str(code): Decision.from_dict(data) for code, data in raw["permissions"].items()
    }
    return version, permissions
