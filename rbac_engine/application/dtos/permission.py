"""DTOs for permissions and role policies (no dependency on ORM)."""

from dataclasses import dataclass, field
from typing import Any

from rbac_engine.domain.enums import PermissionLevel
from rbac_engine.domain.policy import Policy


@dataclass(frozen=True)
class PermissionResult:
    """Catalog permission read-model."""

    id: str
    resource: str
    action: str
    description: str | None


@dataclass(frozen=True)
class PolicyRecord:
    """One stored policy joined with its role and capability."""

    role_id: str
    role_code: str
    resource: str
    action: str
    level: PermissionLevel
    policy: Policy


@dataclass(frozen=True)
class RolePermissionResult:
    """Result of writing a single role policy."""

    role_id: str
    resource: str
    action: str
    level: PermissionLevel
    policy: Policy


@dataclass
class ModulePermissions:
    """Admin view of one module for a role: action -> level ('none' when unassigned)."""

    resource: str
    label: str
    actions: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"resource": self.resource, "label": self.label, "actions": dict(self.actions)}
