"""Authorization gate: the single entry point for permission checks.

authorize() validates the capability against the catalog, resolves the
user's roles in the tenant, merges their policies and returns a Decision.
Every call that produces a decision emits one audit record. Transient store
failures are retried and then answered with a STORE_UNAVAILABLE denial;
nothing is ever allowed without a matching policy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from rbac_engine.application.dtos.authorization import (
    DecisionAuditEntry,
    FilterContract,
    UserContext,
)
from rbac_engine.application.services.decision_audit import LoggingDecisionAuditSink
from rbac_engine.application.services.permission_aggregator import PermissionAggregator
from rbac_engine.application.services.role_resolver import RoleResolver
from rbac_engine.application.services.scope_resolver import ScopeResolver
from rbac_engine.domain import catalog
from rbac_engine.domain.enums import DecisionReason
from rbac_engine.domain.exceptions import AuthorizationDenied, TransientStoreError
from rbac_engine.domain.policy import Decision, PermissionMap, allowed_access, lookup
from rbac_engine.shared.telemetry.tracing import add_span_attributes, traced
from rbac_engine.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from rbac_engine.application.interfaces.services import (
        IDecisionAuditSink,
        IIdentityDirectory,
        IPermissionMapCache,
        IPolicyStore,
    )

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthorizationService:
    """Gate over the role resolver, permission aggregator and scope resolver.

    Resolved permission maps are cached per (tenant, user) when a cache is
    given; policy admin writes invalidate them after commit.
    """

    def __init__(
        self,
        role_resolver: RoleResolver,
        aggregator: PermissionAggregator,
        *,
        scope_resolver: ScopeResolver | None = None,
        cache: IPermissionMapCache | None = None,
        audit_sink: IDecisionAuditSink | None = None,
        directory: IIdentityDirectory | None = None,
        retry_attempts: int = 2,
        retry_backoff_seconds: float = 0.05,
    ) -> None:
        self.role_resolver = role_resolver
        self.aggregator = aggregator
        self.scope_resolver = scope_resolver or ScopeResolver()
        self.cache = cache
        self.audit_sink = audit_sink or LoggingDecisionAuditSink()
        self.directory = directory
        self.retry_attempts = max(0, retry_attempts)
        self.retry_backoff_seconds = max(0.0, retry_backoff_seconds)

    @classmethod
    def from_store(cls, store: IPolicyStore, **kwargs: Any) -> AuthorizationService:
        """Wire resolver and aggregator over one store (kwargs go to __init__)."""
        return cls(RoleResolver(store), PermissionAggregator(store), **kwargs)

    @traced("rbac.authorize")
    async def authorize(self, context: UserContext, resource: str, action: str) -> Decision:
        """Decide whether the user may perform action on resource in the tenant.

        Raises:
            ConfigurationError: If (resource, action) is not in the catalog, or
                stored policy data is malformed.
        """
        catalog.require(resource, action)
        if context.permissions is not None:
            decision = lookup(context.permissions, resource, action)
        else:
            decision = await self._decide(context, resource, action)
        # No await between recording and returning: a cancelled call records nothing.
        self._record(context, decision)
        add_span_attributes(
            **{"rbac.allowed": decision.allowed, "rbac.reason": decision.reason.value}
        )
        return decision

    async def require(self, context: UserContext, resource: str, action: str) -> Decision:
        """Like authorize(), but raise on denial.

        Raises:
            AuthorizationDenied: If the decision is a denial.
        """
        decision = await self.authorize(context, resource, action)
        if not decision.allowed:
            raise AuthorizationDenied(resource, action, decision.reason.value)
        return decision

    async def authorize_filter(
        self, context: UserContext, resource: str, action: str
    ) -> FilterContract:
        """Decision turned into a row filter for list/search queries."""
        decision = await self.authorize(context, resource, action)
        return self.scope_resolver.to_filter_contract(decision)

    async def get_permission_map(self, user_id: str, tenant_id: str) -> PermissionMap:
        """Resolved permission map for (tenant, user), read through the cache.

        Raises:
            TransientStoreError: If the store stays unavailable after retries.
        """
        return await self._with_retries(
            "get_permission_map", lambda: self._load_permission_map(user_id, tenant_id)
        )

    async def get_allowed_access(self, user_id: str, tenant_id: str) -> dict[str, list[str]]:
        """``{resource: [allowed actions]}`` for UI menus and feature flags."""
        return allowed_access(await self.get_permission_map(user_id, tenant_id))

    async def resolve_roles(self, user_id: str, tenant_id: str) -> list[str]:
        """Sorted role keys the user holds in the tenant."""
        return await self._with_retries(
            "resolve_roles",
            lambda: self.role_resolver.resolve_role_codes(user_id, tenant_id),
        )

    async def invalidate_user_cache(self, user_id: str, tenant_id: str | None = None) -> None:
        """Drop cached maps for a user in one tenant, or in every tenant when tenant_id is None."""
        if self.cache is None:
            return
        if tenant_id is None:
            await self.cache.invalidate_user(user_id)
        else:
            await self.cache.invalidate(user_id, tenant_id)

    async def _decide(self, context: UserContext, resource: str, action: str) -> Decision:
        try:
            return await self._with_retries(
                "authorize", lambda: self._evaluate(context, resource, action)
            )
        except TransientStoreError:
            logger.error(
                "Policy store unavailable; denying %s:%s for user %s in tenant %s",
                resource,
                action,
                context.user_id,
                context.tenant_id,
            )
            return Decision.deny(DecisionReason.STORE_UNAVAILABLE, resource, action)

    async def _evaluate(self, context: UserContext, resource: str, action: str) -> Decision:
        inactive = await self._check_directory(context)
        if inactive is not None:
            return Decision.deny(inactive, resource, action)
        permissions = await self._load_permission_map(context.user_id, context.tenant_id)
        return lookup(permissions, resource, action)

    async def _check_directory(self, context: UserContext) -> DecisionReason | None:
        if self.directory is None:
            return None
        tenant = await self.directory.get_tenant(context.tenant_id)
        if tenant is not None and not tenant.is_active:
            return DecisionReason.TENANT_INACTIVE
        user = await self.directory.get_user(context.user_id)
        if user is not None and not user.is_active:
            return DecisionReason.PRINCIPAL_INACTIVE
        return None

    async def _load_permission_map(self, user_id: str, tenant_id: str) -> PermissionMap:
        version = None
        if self.cache is not None:
            cached = await self.cache.get(user_id, tenant_id)
            if cached is not None:
                return cached
            # Read before the store: an invalidation landing mid-load moves it on.
            version = await self.cache.version(user_id, tenant_id)
        roles = await self.role_resolver.resolve_roles(user_id, tenant_id)
        permissions = await self.aggregator.build_permission_map(roles)
        if self.cache is not None:
            await self.cache.set(user_id, tenant_id, permissions, version)
        return permissions

    async def _with_retries(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                return await call()
            except TransientStoreError as e:
                if attempt >= self.retry_attempts:
                    raise
                delay = self.retry_backoff_seconds * (2**attempt)
                attempt += 1
                logger.warning(
                    "%s: transient store error (attempt %d/%d), retrying in %.3fs: %s",
                    operation,
                    attempt,
                    self.retry_attempts,
                    delay,
                    e.message,
                )
                await asyncio.sleep(delay)

    def _record(self, context: UserContext, decision: Decision) -> None:
        self.audit_sink.record(
            DecisionAuditEntry(
                tenant_id=context.tenant_id,
                user_id=context.user_id,
                resource=decision.resource or "",
                action=decision.action or "",
                allowed=decision.allowed,
                scope=decision.scope,
                reason=decision.reason,
                decided_at=utc_now(),
            )
        )
