"""Domain layer: catalog, policies, decisions, enums, value objects, and exceptions.

No dependencies on infrastructure. Used by application and infrastructure
layers.
"""

from rbac_engine.domain.enums import (
    ConditionOperator,
    DecisionReason,
    PermissionLevel,
    PolicyEffect,
    Scope,
    TenantStatus,
    UserStatus,
)
from rbac_engine.domain.exceptions import (
    AuthorizationDenied,
    ConfigurationError,
    DuplicateAssignmentException,
    RbacException,
    ResourceNotFoundException,
    TransientStoreError,
    ValidationException,
)
from rbac_engine.domain.policy import (
    Condition,
    Decision,
    PermissionMap,
    Policy,
    build_permission_map,
    level_to_policy,
    merge_policies,
)
from rbac_engine.domain.value_objects import RoleKey, normalize_legacy_role_name

__all__ = [
    "ConditionOperator",
    "DecisionReason",
    "PermissionLevel",
    "PolicyEffect",
    "Scope",
    "TenantStatus",
    "UserStatus",
    "RbacException",
    "ValidationException",
    "ConfigurationError",
    "AuthorizationDenied",
    "TransientStoreError",
    "ResourceNotFoundException",
    "DuplicateAssignmentException",
    "Condition",
    "Policy",
    "Decision",
    "PermissionMap",
    "merge_policies",
    "build_permission_map",
    "level_to_policy",
    "RoleKey",
    "normalize_legacy_role_name",
]
