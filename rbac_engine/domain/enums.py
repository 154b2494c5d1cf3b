"""Domain enumerations for the RBAC engine.

Enums represent fixed sets of authorization values: scopes and their
ranking, policy effects, permission levels, condition operators, and the
reason codes carried by decisions.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings (e.g. for CHECK constraints)."""
        return [member.value for member in cls]


class TenantStatus(_ValuesMixin, str, Enum):
    """Tenant lifecycle status. Only ACTIVE tenants receive grants."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class UserStatus(_ValuesMixin, str, Enum):
    """Principal status in the identity directory."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Scope(_ValuesMixin, str, Enum):
    """Breadth of records a grant covers, ordered by rank.

    none < self < owned < tenant < all. Merging picks the highest rank.
    """

    NONE = "none"
    SELF = "self"
    OWNED = "owned"
    TENANT = "tenant"
    ALL = "all"

    @property
    def rank(self) -> int:
        """Numeric rank used when merging scopes across roles."""
        return _SCOPE_RANK[self]


_SCOPE_RANK: dict[Scope, int] = {
    Scope.NONE: 0,
    Scope.SELF: 10,
    Scope.OWNED: 20,
    Scope.TENANT: 30,
    Scope.ALL: 99,
}


class PolicyEffect(_ValuesMixin, str, Enum):
    """Whether a policy grants or forbids its capability."""

    ALLOW = "allow"
    DENY = "deny"


class PermissionLevel(_ValuesMixin, str, Enum):
    """Administrative shorthand for a policy (see domain.policy.level_to_policy)."""

    NONE = "none"
    READ = "read"
    LIMITED = "limited"
    FULL = "full"


class ConditionOperator(_ValuesMixin, str, Enum):
    """Comparison applied between a record field and a resolved value."""

    EQ = "eq"
    NE = "ne"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"


class DecisionReason(_ValuesMixin, str, Enum):
    """Reason code attached to every decision."""

    POLICY_ALLOW = "POLICY_ALLOW"
    NO_MATCHING_POLICY = "NO_MATCHING_POLICY"
    EXPLICIT_DENY = "EXPLICIT_DENY"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    PRINCIPAL_INACTIVE = "PRINCIPAL_INACTIVE"
    TENANT_INACTIVE = "TENANT_INACTIVE"
