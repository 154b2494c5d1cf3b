"""Service interfaces (ports) for the application layer.

Protocols define what the role resolver, aggregator and gate need from
storage, caching and auditing, so each can be swapped (SQL store, fakes in
tests, another cache backend) without touching the services.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from rbac_engine.application.dtos.authorization import DecisionAuditEntry
    from rbac_engine.application.dtos.directory import TenantResult, UserResult
    from rbac_engine.application.dtos.permission import PolicyRecord
    from rbac_engine.application.dtos.role import ResolvedRole
    from rbac_engine.domain.policy import PermissionMap


class IPolicyStore(Protocol):
    """Read side of the policy store.

    Implementations raise TransientStoreError when the store is unreachable
    and ConfigurationError when stored policy data is malformed.
    """

    async def get_user_roles(self, user_id: str, tenant_id: str) -> list[ResolvedRole]:
        """Active, unexpired roles the user holds in the tenant (tenant roles + system roles)."""

    async def get_policies(
        self,
        role_ids: Collection[str],
        resource: str | None = None,
        action: str | None = None,
    ) -> list[PolicyRecord]:
        """Policies of the given roles, optionally narrowed to one capability."""


class IIdentityDirectory(Protocol):
    """Lookup of tenant and principal status."""

    async def get_tenant(self, tenant_id: str) -> TenantResult | None:
        """Return the tenant or None if unknown."""

    async def get_user(self, user_id: str) -> UserResult | None:
        """Return the principal or None if unknown."""


class ICacheService(Protocol):
    """Minimal cache protocol for permission map caching."""

    def is_available(self) -> bool:
        """Return True if cache is connected."""

    async def get(self, key: str) -> Any:
        """Return cached value or None."""

    async def get_many(self, keys: Sequence[str]) -> list[Any]:
        """Return cached values in key order, None for each miss."""

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL. Returns True on success."""

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True on success."""

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern. Returns count deleted."""


class IDecisionAuditSink(Protocol):
    """Receiver of one audit record per decision.

    record() is synchronous so no suspension point sits between recording
    and returning the decision.
    """

    def record(self, entry: DecisionAuditEntry) -> None:
        """Record a decision."""


class IPermissionMapCache(Protocol):
    """Read-through cache of resolved permission maps per (tenant, user)."""

    async def get(self, user_id: str, tenant_id: str) -> PermissionMap | None:
        """Return the cached map, or None on miss or when the cache is unavailable."""

    async def version(self, user_id: str, tenant_id: str) -> str | None:
        """Invalidation stamp to read before loading a map from the store."""

    async def set(
        self,
        user_id: str,
        tenant_id: str,
        permissions: PermissionMap,
        version: str | None = None,
    ) -> None:
        """Cache a freshly built map unless an invalidation moved past version."""

    async def invalidate(self, user_id: str, tenant_id: str) -> None:
        """Drop the user's map in one tenant."""

    async def invalidate_user(self, user_id: str) -> None:
        """Drop the user's maps in every tenant."""
