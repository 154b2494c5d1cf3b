"""Cache: Redis service, permission map cache, and key builders."""

from rbac_engine.infrastructure.cache.keys import (
    all_permissions_pattern,
    permission_key,
    tenant_permissions_pattern,
    user_permissions_pattern,
)
from rbac_engine.infrastructure.cache.permission_cache import PermissionMapCache
from rbac_engine.infrastructure.cache.redis_cache import CacheService

__all__ = [
    "CacheService",
    "PermissionMapCache",
    "permission_key",
    "user_permissions_pattern",
    "tenant_permissions_pattern",
    "all_permissions_pattern",
]
