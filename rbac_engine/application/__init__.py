"""Application layer: ports, DTOs, and the authorization services.

Depends only on domain and protocol definitions. Infrastructure implements
the interfaces (policy store, cache, audit sinks).
"""

from rbac_engine.application.dtos import FilterContract, UserContext
from rbac_engine.application.interfaces import (
    ICacheService,
    IDecisionAuditSink,
    IIdentityDirectory,
    IPermissionMapCache,
    IPolicyStore,
)
from rbac_engine.application.services import (
    AuthorizationService,
    PermissionAggregator,
    RoleResolver,
    ScopeResolver,
)

__all__ = [
    "AuthorizationService",
    "PermissionAggregator",
    "RoleResolver",
    "ScopeResolver",
    "UserContext",
    "FilterContract",
    "ICacheService",
    "IDecisionAuditSink",
    "IIdentityDirectory",
    "IPermissionMapCache",
    "IPolicyStore",
]
