"""Unit tests for AuthorizationService (gate) over a mocked policy store."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from rbac_engine.application.dtos.authorization import UserContext
from rbac_engine.application.dtos.directory import TenantResult, UserResult
from rbac_engine.application.dtos.permission import PolicyRecord
from rbac_engine.application.dtos.role import ResolvedRole
from rbac_engine.application.services.authorization_service import AuthorizationService
from rbac_engine.application.services.scope_resolver import TENANT_CONDITION
from rbac_engine.domain.enums import (
    ConditionOperator,
    DecisionReason,
    PermissionLevel,
    Scope,
)
from rbac_engine.domain.exceptions import (
    AuthorizationDenied,
    ConfigurationError,
    TransientStoreError,
)
from rbac_engine.domain.policy import Condition, Policy, build_permission_map

TEACHER = ResolvedRole(
    id="r-teacher", code="tenant:t1:TEACHER", tenant_id="t1", is_system_role=False
)
TEACHER_OWNS = Condition("teacherId", ConditionOperator.EQ, "userId")


def _record(
    resource: str, action: str, policy: Policy, role: ResolvedRole = TEACHER
) -> PolicyRecord:
    return PolicyRecord(
        role_id=role.id,
        role_code=role.code,
        resource=resource,
        action=action,
        level=PermissionLevel.LIMITED,
        policy=policy,
    )


@pytest.fixture
def store() -> AsyncMock:
    """Store where the user holds Teacher with an owned students:read policy."""
    mock = AsyncMock()
    mock.get_user_roles.return_value = [TEACHER]
    mock.get_policies.return_value = [
        _record("students", "read", Policy.allow(Scope.OWNED, [TEACHER_OWNS])),
    ]
    return mock


@pytest.fixture
def context() -> UserContext:
    return UserContext(user_id="u1", tenant_id="t1")


@pytest.fixture
def service(store: AsyncMock, audit_sink) -> AuthorizationService:
    return AuthorizationService.from_store(
        store, audit_sink=audit_sink, retry_attempts=2, retry_backoff_seconds=0
    )


@pytest.mark.asyncio
async def test_allow_carries_scope_and_conditions(
    service: AuthorizationService, context: UserContext, audit_sink
) -> None:
    decision = await service.authorize(context, "students", "read")
    assert decision.allowed
    assert decision.scope == Scope.OWNED
    assert decision.conditions == (TEACHER_OWNS,)
    assert len(audit_sink.entries) == 1
    entry = audit_sink.entries[0]
    assert entry.allowed
    assert (entry.tenant_id, entry.user_id, entry.resource, entry.action) == (
        "t1",
        "u1",
        "students",
        "read",
    )


@pytest.mark.asyncio
async def test_missing_policy_denies_and_audits_reason(
    service: AuthorizationService, context: UserContext, audit_sink
) -> None:
    decision = await service.authorize(context, "students", "delete")
    assert not decision.allowed
    assert decision.reason == DecisionReason.NO_MATCHING_POLICY
    assert audit_sink.entries[0].reason == DecisionReason.NO_MATCHING_POLICY
    assert not audit_sink.entries[0].allowed


@pytest.mark.asyncio
async def test_zero_roles_is_no_matching_policy(
    service: AuthorizationService, store: AsyncMock, context: UserContext
) -> None:
    store.get_user_roles.return_value = []
    decision = await service.authorize(context, "students", "read")
    assert decision.reason == DecisionReason.NO_MATCHING_POLICY
    store.get_policies.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_capability_raises_without_audit(
    service: AuthorizationService, store: AsyncMock, context: UserContext, audit_sink
) -> None:
    with pytest.raises(ConfigurationError):
        await service.authorize(context, "classes", "read")
    with pytest.raises(ConfigurationError):
        await service.authorize(context, "students", "archive")
    assert audit_sink.entries == []
    store.get_user_roles.assert_not_awaited()


@pytest.mark.asyncio
async def test_malformed_store_data_propagates(
    service: AuthorizationService, store: AsyncMock, context: UserContext, audit_sink
) -> None:
    store.get_policies.side_effect = ConfigurationError("Malformed policy: scope")
    with pytest.raises(ConfigurationError):
        await service.authorize(context, "students", "read")
    assert audit_sink.entries == []


@pytest.mark.asyncio
async def test_explicit_deny_from_second_role_wins(
    service: AuthorizationService, store: AsyncMock, context: UserContext
) -> None:
    blocked = ResolvedRole(
        id="r-blocked", code="tenant:t1:BLOCKED", tenant_id="t1", is_system_role=False
    )
    store.get_user_roles.return_value = [TEACHER, blocked]
    store.get_policies.return_value = [
        _record("students", "read", Policy.allow(Scope.TENANT)),
        _record("students", "read", Policy.deny(), role=blocked),
    ]
    decision = await service.authorize(context, "students", "read")
    assert decision.reason == DecisionReason.EXPLICIT_DENY


@pytest.mark.asyncio
async def test_transient_failure_is_retried(
    service: AuthorizationService, store: AsyncMock, context: UserContext
) -> None:
    store.get_user_roles.side_effect = [
        TransientStoreError("get_user_roles", "connection reset"),
        [TEACHER],
    ]
    decision = await service.authorize(context, "students", "read")
    assert decision.allowed
    assert store.get_user_roles.await_count == 2


@pytest.mark.asyncio
async def test_store_unavailable_fails_closed(
    service: AuthorizationService, store: AsyncMock, context: UserContext, audit_sink
) -> None:
    store.get_user_roles.side_effect = TransientStoreError("get_user_roles", "timeout")
    decision = await service.authorize(context, "students", "read")
    assert not decision.allowed
    assert decision.reason == DecisionReason.STORE_UNAVAILABLE
    assert store.get_user_roles.await_count == 3
    assert audit_sink.entries[0].reason == DecisionReason.STORE_UNAVAILABLE


@pytest.mark.asyncio
async def test_get_permission_map_raises_after_retries(
    service: AuthorizationService, store: AsyncMock
) -> None:
    store.get_user_roles.side_effect = TransientStoreError("get_user_roles", "timeout")
    with pytest.raises(TransientStoreError):
        await service.get_permission_map("u1", "t1")


@pytest.mark.asyncio
async def test_precomputed_permissions_skip_the_store(
    service: AuthorizationService, store: AsyncMock, audit_sink
) -> None:
    permissions = build_permission_map([("fees", "read", Policy.allow(Scope.TENANT))])
    context = UserContext(user_id="u1", tenant_id="t1", permissions=permissions)
    allowed = await service.authorize(context, "fees", "read")
    denied = await service.authorize(context, "fees", "delete")
    assert allowed.allowed
    assert allowed.scope == Scope.TENANT
    assert denied.reason == DecisionReason.NO_MATCHING_POLICY
    store.get_user_roles.assert_not_awaited()
    assert len(audit_sink.entries) == 2


@pytest.mark.asyncio
async def test_precomputed_map_agrees_with_live_decision(
    service: AuthorizationService, context: UserContext
) -> None:
    permissions = await service.get_permission_map("u1", "t1")
    live = await service.authorize(context, "students", "read")
    precomputed = await service.authorize(
        UserContext(user_id="u1", tenant_id="t1", permissions=permissions), "students", "read"
    )
    assert live == precomputed


@pytest.mark.asyncio
async def test_require_raises_on_denial(
    service: AuthorizationService, context: UserContext
) -> None:
    assert (await service.require(context, "students", "read")).allowed
    with pytest.raises(AuthorizationDenied) as exc_info:
        await service.require(context, "students", "delete")
    assert exc_info.value.reason == "NO_MATCHING_POLICY"


@pytest.mark.asyncio
async def test_authorize_filter(service: AuthorizationService, context: UserContext) -> None:
    contract = await service.authorize_filter(context, "students", "read")
    assert contract.scope == Scope.OWNED
    assert contract.conditions == (TENANT_CONDITION, TEACHER_OWNS)
    denied = await service.authorize_filter(context, "students", "delete")
    assert denied.match_nothing


@pytest.mark.asyncio
async def test_allowed_access_and_roles(service: AuthorizationService) -> None:
    assert await service.get_allowed_access("u1", "t1") == {"students": ["read"]}
    assert await service.resolve_roles("u1", "t1") == ["tenant:t1:TEACHER"]


@pytest.mark.asyncio
async def test_cancelled_check_records_nothing(
    service: AuthorizationService, store: AsyncMock, context: UserContext, audit_sink
) -> None:
    started = asyncio.Event()

    async def _slow(*_args: object) -> list[ResolvedRole]:
        started.set()
        await asyncio.sleep(10)
        return [TEACHER]

    store.get_user_roles.side_effect = _slow
    task = asyncio.create_task(service.authorize(context, "students", "read"))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert audit_sink.entries == []


class TestDirectoryCheck:
    """Inactive principals and tenants are denied before policies are read."""

    @pytest.fixture
    def directory(self) -> AsyncMock:
        mock = AsyncMock()
        mock.get_tenant.return_value = TenantResult(
            id="t1", code="t1", name="T1", status="active"
        )
        mock.get_user.return_value = UserResult(
            id="u1", tenant_id="t1", email="u1@x", status="active"
        )
        return mock

    @pytest.fixture
    def service(self, store: AsyncMock, directory: AsyncMock, audit_sink) -> AuthorizationService:
        return AuthorizationService.from_store(
            store, directory=directory, audit_sink=audit_sink, retry_backoff_seconds=0
        )

    @pytest.mark.asyncio
    async def test_active_principal_proceeds(
        self, service: AuthorizationService, context: UserContext
    ) -> None:
        assert (await service.authorize(context, "students", "read")).allowed

    @pytest.mark.asyncio
    async def test_suspended_tenant(
        self, service: AuthorizationService, directory: AsyncMock, context: UserContext
    ) -> None:
        directory.get_tenant.return_value = TenantResult(
            id="t1", code="t1", name="T1", status="suspended"
        )
        decision = await service.authorize(context, "students", "read")
        assert decision.reason == DecisionReason.TENANT_INACTIVE

    @pytest.mark.asyncio
    async def test_inactive_user(
        self,
        service: AuthorizationService,
        directory: AsyncMock,
        store: AsyncMock,
        context: UserContext,
    ) -> None:
        directory.get_user.return_value = UserResult(
            id="u1", tenant_id="t1", email="u1@x", status="inactive"
        )
        decision = await service.authorize(context, "students", "read")
        assert decision.reason == DecisionReason.PRINCIPAL_INACTIVE
        store.get_user_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_principal_proceeds(
        self, service: AuthorizationService, directory: AsyncMock, context: UserContext
    ) -> None:
        directory.get_tenant.return_value = None
        directory.get_user.return_value = None
        assert (await service.authorize(context, "students", "read")).allowed


class TestPermissionMapCaching:
    @pytest.fixture
    def service(self, store: AsyncMock, permission_cache, audit_sink) -> AuthorizationService:
        return AuthorizationService.from_store(
            store, cache=permission_cache, audit_sink=audit_sink, retry_backoff_seconds=0
        )

    @pytest.mark.asyncio
    async def test_second_check_is_served_from_cache(
        self, service: AuthorizationService, store: AsyncMock, context: UserContext
    ) -> None:
        first = await service.authorize(context, "students", "read")
        second = await service.authorize(context, "students", "read")
        assert first == second
        assert store.get_user_roles.await_count == 1

    @pytest.mark.asyncio
    async def test_invalidation_forces_reload(
        self, service: AuthorizationService, store: AsyncMock, context: UserContext
    ) -> None:
        await service.authorize(context, "students", "read")
        await service.invalidate_user_cache("u1", "t1")
        await service.authorize(context, "students", "read")
        await service.invalidate_user_cache("u1")
        await service.authorize(context, "students", "read")
        assert store.get_user_roles.await_count == 3

    @pytest.mark.asyncio
    async def test_cache_down_falls_back_to_store(
        self,
        service: AuthorizationService,
        store: AsyncMock,
        cache_service,
        context: UserContext,
    ) -> None:
        cache_service.available = False
        await service.authorize(context, "students", "read")
        await service.authorize(context, "students", "read")
        assert store.get_user_roles.await_count == 2
        assert cache_service.store == {}

    @pytest.mark.asyncio
    async def test_invalidation_during_load_is_not_overwritten(
        self, service: AuthorizationService, store: AsyncMock, context: UserContext
    ) -> None:
        loading = asyncio.Event()
        release = asyncio.Event()
        granted = store.get_policies.return_value

        async def _slow_policies(*args, **kwargs):
            loading.set()
            await release.wait()
            return granted

        store.get_policies.side_effect = _slow_policies
        in_flight = asyncio.create_task(service.authorize(context, "students", "read"))
        await loading.wait()
        # Policy revoked and holders invalidated while the load is still running.
        store.get_policies.side_effect = None
        store.get_policies.return_value = []
        await service.invalidate_user_cache("u1", "t1")
        release.set()

        assert (await in_flight).allowed
        decision = await service.authorize(context, "students", "read")
        assert not decision.allowed
        assert decision.reason == DecisionReason.NO_MATCHING_POLICY

    @pytest.mark.asyncio
    async def test_ids_with_separators_are_cached(
        self, service: AuthorizationService, store: AsyncMock
    ) -> None:
        context = UserContext(user_id="google:123", tenant_id="t1")
        assert (await service.authorize(context, "students", "read")).allowed
        assert (await service.authorize(context, "students", "read")).allowed
        assert store.get_user_roles.await_count == 1
