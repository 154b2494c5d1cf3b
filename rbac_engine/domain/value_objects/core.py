"""Domain value objects for the RBAC engine.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

import re
from dataclasses import dataclass

from rbac_engine.core.constants import ROLE_KEY_SEP, ROLE_KEY_SYSTEM, ROLE_KEY_TENANT

# Role slugs: UPPER_SNAKE_CASE (e.g. SCHOOL_ADMIN).
_SLUG_RE = re.compile(r"^[A-Z0-9]+(_[A-Z0-9]+)*$")
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]+")


def normalize_legacy_role_name(name: str) -> str:
    """Turn a free-text role name into a role slug.

    "School Admin" -> "SCHOOL_ADMIN", "hr-manager" -> "HR_MANAGER".

    Raises:
        ValueError: If nothing alphanumeric is left after normalization.
    """
    slug = _NON_ALNUM_RE.sub("_", (name or "").strip().upper()).strip("_")
    if not slug:
        raise ValueError(f"Cannot derive a role slug from {name!r}")
    return slug


@dataclass(frozen=True)
class RoleKey:
    """Stable, globally unique role identifier.

    Rendered as ``system:<SLUG>`` for system roles and
    ``tenant:<tenant_id>:<SLUG>`` for tenant-scoped roles. System roles
    carry no tenant.
    """

    slug: str
    tenant_id: str | None = None

    def __post_init__(self) -> None:
        if not self.slug or not _SLUG_RE.match(self.slug):
            raise ValueError(
                f"Role slug must be UPPER_SNAKE_CASE (e.g. 'SCHOOL_ADMIN'), got: {self.slug!r}"
            )
        if self.tenant_id is not None:
            if not self.tenant_id or ROLE_KEY_SEP in self.tenant_id:
                raise ValueError(
                    f"Role tenant_id must be non-empty and must not contain "
                    f"{ROLE_KEY_SEP!r}, got: {self.tenant_id!r}"
                )

    @classmethod
    def system(cls, slug: str) -> "RoleKey":
        """Key for a global role usable in every tenant."""
        return cls(slug=slug)

    @classmethod
    def for_tenant(cls, tenant_id: str, slug: str) -> "RoleKey":
        """Key for a role owned by one tenant."""
        return cls(slug=slug, tenant_id=tenant_id)

    @classmethod
    def parse(cls, value: str) -> "RoleKey":
        """Parse a rendered role key.

        Raises:
            ValueError: If the value is not in system/tenant key form.
        """
        parts = (value or "").split(ROLE_KEY_SEP)
        if len(parts) == 2 and parts[0] == ROLE_KEY_SYSTEM:
            return cls.system(parts[1])
        if len(parts) == 3 and parts[0] == ROLE_KEY_TENANT:
            return cls.for_tenant(parts[1], parts[2])
        raise ValueError(
            f"Role key must be 'system:<SLUG>' or 'tenant:<tenant_id>:<SLUG>', got: {value!r}"
        )

    @property
    def is_system(self) -> bool:
        return self.tenant_id is None

    def __str__(self) -> str:
        if self.tenant_id is None:
            return ROLE_KEY_SEP.join((ROLE_KEY_SYSTEM, self.slug))
        return ROLE_KEY_SEP.join((ROLE_KEY_TENANT, self.tenant_id, self.slug))
