"""Cache key builders for resolved permission maps and their generations.

Key components (tenant_id, user_id) are percent-encoded, so ids holding
CACHE_KEY_SEP or glob metacharacters (``google:123``) still produce
unambiguous keys and invalidation patterns only match the intended keys.

Generation keys live under their own prefix so permission patterns never
touch them. Each invalidation writes a fresh value to the generation key
covering what it dropped; a cached map is only served while the
generations it was stamped with are still current.
"""

from urllib.parse import quote

from rbac_engine.core.constants import (
    CACHE_KEY_SEP,
    CACHE_PREFIX_GENERATION,
    CACHE_PREFIX_PERMISSION,
)


def escape_key_component(value: str) -> str:
    """Percent-encode everything but letters, digits and ``_.-~``."""
    return quote(value, safe="")


def _join(*parts: str) -> str:
    return CACHE_KEY_SEP.join(parts)


def permission_key(tenant_id: str, user_id: str) -> str:
    """Key for one user's permission map in one tenant: rbac:permissions:<tenant>:<user>."""
    return _join(
        CACHE_PREFIX_PERMISSION, escape_key_component(tenant_id), escape_key_component(user_id)
    )


def user_permissions_pattern(user_id: str) -> str:
    """Pattern matching the user's permission maps in every tenant."""
    return _join(CACHE_PREFIX_PERMISSION, "*", escape_key_component(user_id))


def tenant_permissions_pattern(tenant_id: str) -> str:
    """Pattern matching every user's permission map in one tenant."""
    return _join(CACHE_PREFIX_PERMISSION, escape_key_component(tenant_id), "*")


def all_permissions_pattern() -> str:
    """Pattern matching every cached permission map."""
    return _join(CACHE_PREFIX_PERMISSION, "*")


def pair_generation_key(tenant_id: str, user_id: str) -> str:
    return _join(
        CACHE_PREFIX_GENERATION,
        "pair",
        escape_key_component(tenant_id),
        escape_key_component(user_id),
    )


def user_generation_key(user_id: str) -> str:
    return _join(CACHE_PREFIX_GENERATION, "user", escape_key_component(user_id))


def tenant_generation_key(tenant_id: str) -> str:
    return _join(CACHE_PREFIX_GENERATION, "tenant", escape_key_component(tenant_id))


def all_generation_key() -> str:
    return _join(CACHE_PREFIX_GENERATION, "all")


def generation_keys(tenant_id: str, user_id: str) -> tuple[str, ...]:
    """Every generation key that can invalidate the map for (tenant, user)."""
    return (
        all_generation_key(),
        tenant_generation_key(tenant_id),
        user_generation_key(user_id),
        pair_generation_key(tenant_id, user_id),
    )
