"""Application services: role resolution, aggregation, scoping, and the gate."""

from rbac_engine.application.services.authorization_service import AuthorizationService
from rbac_engine.application.services.decision_audit import (
    CompositeDecisionAuditSink,
    LoggingDecisionAuditSink,
)
from rbac_engine.application.services.permission_aggregator import PermissionAggregator
from rbac_engine.application.services.role_resolver import RoleResolver
from rbac_engine.application.services.scope_resolver import ScopeResolver

__all__ = [
    "AuthorizationService",
    "CompositeDecisionAuditSink",
    "LoggingDecisionAuditSink",
    "PermissionAggregator",
    "RoleResolver",
    "ScopeResolver",
]
