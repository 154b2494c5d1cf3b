"""Application ports (Protocols implemented by infrastructure)."""

from rbac_engine.application.interfaces.services import (
    ICacheService,
    IDecisionAuditSink,
    IIdentityDirectory,
    IPermissionMapCache,
    IPolicyStore,
)

__all__ = [
    "IPolicyStore",
    "IIdentityDirectory",
    "ICacheService",
    "IDecisionAuditSink",
    "IPermissionMapCache",
]
