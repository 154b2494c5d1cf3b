"""Composition root: builds the gate and the admin service from infrastructure.

Embedding applications call these once at startup (or per request for the
audit session) instead of wiring repositories and caches themselves.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rbac_engine.application.interfaces.services import ICacheService, IDecisionAuditSink
from rbac_engine.application.services.authorization_service import AuthorizationService
from rbac_engine.application.services.decision_audit import (
    CompositeDecisionAuditSink,
    LoggingDecisionAuditSink,
)
from rbac_engine.core.config import Settings, get_settings
from rbac_engine.infrastructure.cache.permission_cache import PermissionMapCache
from rbac_engine.infrastructure.persistence.database import get_session_factory
from rbac_engine.infrastructure.services.decision_audit import SqlDecisionAuditSink
from rbac_engine.infrastructure.services.policy_admin_service import PolicyAdminService
from rbac_engine.infrastructure.services.sql_policy_store import SqlPolicyStore


def build_permission_cache(
    cache_service: ICacheService | None, settings: Settings | None = None
) -> PermissionMapCache | None:
    if cache_service is None:
        return None
    settings = settings or get_settings()
    return PermissionMapCache(cache_service, ttl=settings.cache_ttl_permissions)


def build_authorization_service(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    cache_service: ICacheService | None = None,
    audit_session: AsyncSession | None = None,
    settings: Settings | None = None,
) -> AuthorizationService:
    """Gate over the SQL policy store with the identity directory check enabled.

    With ``audit_persist_decisions`` on and an ``audit_session`` given,
    decisions are also staged as authorization_audit rows in that session.
    """
    settings = settings or get_settings()
    store = SqlPolicyStore(session_factory or get_session_factory())
    audit_sink: IDecisionAuditSink = LoggingDecisionAuditSink()
    if settings.audit_persist_decisions and audit_session is not None:
        audit_sink = CompositeDecisionAuditSink(
            audit_sink, SqlDecisionAuditSink(audit_session)
        )
    return AuthorizationService.from_store(
        store,
        cache=build_permission_cache(cache_service, settings),
        audit_sink=audit_sink,
        directory=store,
        retry_attempts=settings.store_retry_attempts,
        retry_backoff_seconds=settings.store_retry_backoff_seconds,
    )


def build_policy_admin_service(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    cache_service: ICacheService | None = None,
    settings: Settings | None = None,
) -> PolicyAdminService:
    """Admin service that invalidates the same cache the gate reads."""
    return PolicyAdminService(
        session_factory or get_session_factory(),
        permission_cache=build_permission_cache(cache_service, settings),
    )
