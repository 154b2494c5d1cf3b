"""Infrastructure implementations of application service interfaces."""

from rbac_engine.infrastructure.services.decision_audit import SqlDecisionAuditSink
from rbac_engine.infrastructure.services.policy_admin_service import PolicyAdminService
from rbac_engine.infrastructure.services.policy_seeder import PolicySeeder
from rbac_engine.infrastructure.services.sql_policy_store import SqlPolicyStore

__all__ = [
    "PolicyAdminService",
    "PolicySeeder",
    "SqlDecisionAuditSink",
    "SqlPolicyStore",
]
