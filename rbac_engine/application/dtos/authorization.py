"""DTOs for authorization requests, filter contracts and decision audit."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from rbac_engine.domain.enums import DecisionReason, Scope
from rbac_engine.domain.policy import Condition, Decision


@dataclass(frozen=True)
class UserContext:
    """Who is asking, in which tenant.

    permissions, when set, is a precomputed permission map; the gate then
    answers from it without touching the store. attributes supplies
    additional condition value sources (e.g. classIds).
    """

    user_id: str
    tenant_id: str
    permissions: Mapping[str, Decision] | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FilterContract:
    """Storage-agnostic row filter derived from a decision.

    match_nothing is True for denials and scope none. scope all with
    match_nothing False means no predicate at all.
    """

    allowed: bool
    scope: Scope
    conditions: tuple[Condition, ...]
    match_nothing: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "scope": self.scope.value,
            "conditions": [c.to_dict() for c in self.conditions],
            "matchNothing": self.match_nothing,
        }


@dataclass(frozen=True)
class DecisionAuditEntry:
    """Audit record emitted for every gate decision."""

    tenant_id: str
    user_id: str
    resource: str
    action: str
    allowed: bool
    scope: Scope
    reason: DecisionReason
    decided_at: datetime
