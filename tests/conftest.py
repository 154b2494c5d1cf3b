"""Pytest configuration and fixtures for rbac-engine.

Store-backed tests run against an in-memory SQLite database (aiosqlite)
whose schema is created from the ORM metadata for every test, so no
external database is required. Redis is replaced by an in-memory cache
that round-trips values through JSON like CacheService does.
"""

import fnmatch
import json
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from rbac_engine.application.dtos.authorization import DecisionAuditEntry
from rbac_engine.application.services.authorization_service import AuthorizationService
from rbac_engine.domain.enums import TenantStatus, UserStatus
from rbac_engine.infrastructure.cache.permission_cache import PermissionMapCache
from rbac_engine.infrastructure.persistence.database import (
    create_schema,
    make_session_factory,
)
from rbac_engine.infrastructure.persistence.models import Tenant, User
from rbac_engine.infrastructure.services.policy_admin_service import PolicyAdminService
from rbac_engine.infrastructure.services.sql_policy_store import SqlPolicyStore


class FakeCacheService:
    """In-memory ICacheService. Flip ``available`` to simulate Redis being down."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.available = True

    def is_available(self) -> bool:
        return self.available

    async def get(self, key: str) -> Any:
        raw = self.store.get(key)
        return None if raw is None else json.loads(raw)

    async def get_many(self, keys: Sequence[str]) -> list[Any]:
        return [await self.get(key) for key in keys]

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.store[key] = json.dumps(value)
        return True

    async def delete(self, key: str) -> bool:
        self.store.pop(key, None)
        return True

    async def delete_pattern(self, pattern: str) -> int:
        matched = [k for k in self.store if fnmatch.fnmatchcase(k, pattern)]
        for key in matched:
            del self.store[key]
        return len(matched)


class RecordingAuditSink:
    """IDecisionAuditSink that keeps every entry."""

    def __init__(self) -> None:
        self.entries: list[DecisionAuditEntry] = []

    def record(self, entry: DecisionAuditEntry) -> None:
        self.entries.append(entry)


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Fresh in-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Session for repository tests. Rolls back after the test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def cache_service() -> FakeCacheService:
    return FakeCacheService()


@pytest.fixture
def permission_cache(cache_service: FakeCacheService) -> PermissionMapCache:
    return PermissionMapCache(cache_service, ttl=60)


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def policy_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlPolicyStore:
    return SqlPolicyStore(session_factory)


@pytest.fixture
def admin_service(
    session_factory: async_sessionmaker[AsyncSession],
    permission_cache: PermissionMapCache,
) -> PolicyAdminService:
    return PolicyAdminService(session_factory, permission_cache=permission_cache)


@pytest.fixture
def gate(
    policy_store: SqlPolicyStore,
    permission_cache: PermissionMapCache,
    audit_sink: RecordingAuditSink,
) -> AuthorizationService:
    """Gate over the SQLite store with cache, directory check and recording audit."""
    return AuthorizationService.from_store(
        policy_store,
        cache=permission_cache,
        audit_sink=audit_sink,
        directory=policy_store,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def make_tenant(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[str]]:
    """Insert a tenant row and return its id."""

    async def _make(code: str, status: TenantStatus = TenantStatus.ACTIVE) -> str:
        async with session_factory() as session:
            async with session.begin():
                tenant = Tenant(code=code, name=f"School {code}", status=status.value)
                session.add(tenant)
                await session.flush()
                return tenant.id

    return _make


@pytest.fixture
def make_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[str]]:
    """Insert a user row in its home tenant and return its id."""

    async def _make(
        tenant_id: str, email: str, status: UserStatus = UserStatus.ACTIVE
    ) -> str:
        async with session_factory() as session:
            async with session.begin():
                user = User(tenant_id=tenant_id, email=email, status=status.value)
                session.add(user)
                await session.flush()
                return user.id

    return _make
