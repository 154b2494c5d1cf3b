"""Domain value objects."""

from rbac_engine.domain.value_objects.core import RoleKey, normalize_legacy_role_name

__all__ = [
    "RoleKey",
    "normalize_legacy_role_name",
]
