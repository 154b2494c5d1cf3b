"""SQL decision audit sink (implements IDecisionAuditSink)."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.application.dtos.authorization import DecisionAuditEntry
from rbac_engine.infrastructure.persistence.models.authorization_audit import (
    AuthorizationAudit,
)


class SqlDecisionAuditSink:
    """Adds an authorization_audit row to the caller's session.

    record() only stages the row; it is written when the caller commits its
    own unit of work, so a rolled-back request leaves no audit row behind.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def record(self, entry: DecisionAuditEntry) -> None:
        self._session.add(
            AuthorizationAudit(
                tenant_id=entry.tenant_id,
                user_id=entry.user_id,
                resource=entry.resource,
                action=entry.action,
                allowed=entry.allowed,
                scope=entry.scope.value,
                reason=entry.reason.value,
                decided_at=entry.decided_at,
            )
        )
