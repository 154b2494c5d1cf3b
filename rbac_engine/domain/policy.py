"""Policies, decisions and the pure merge rule.

A policy is what one role grants for one (resource, action): an effect, a
scope and an ordered list of conditions. Merging the policies of every role
a user holds yields a Decision. The merge is pure and commutative so a
precomputed permission map and a live store read always agree.
"""

import json
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from rbac_engine.domain import catalog
from rbac_engine.domain.enums import (
    ConditionOperator,
    DecisionReason,
    PermissionLevel,
    PolicyEffect,
    Scope,
)
from rbac_engine.domain.exceptions import ConfigurationError, ValidationException


@dataclass(frozen=True)
class Condition:
    """Row-level predicate: ``record[field] <operator> <resolved value_source>``."""

    field: str
    operator: ConditionOperator
    value_source: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        """Build from stored JSON (``valueSource`` or ``value_source`` accepted).

        Raises:
            ConfigurationError: If a key is missing or the operator is unknown.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Policy condition must be an object", {"condition": repr(data)}
            )
        field_name = data.get("field")
        operator = data.get("operator", data.get("op"))
        source = data.get("valueSource", data.get("value_source"))
        if not field_name or not operator or not source:
            raise ConfigurationError(
                "Policy condition requires field, operator and valueSource",
                {"condition": dict(data)},
            )
        try:
            op = ConditionOperator(operator)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown condition operator: {operator!r}",
                {"condition": dict(data), "allowed": ConditionOperator.values()},
            ) from e
        return cls(field=str(field_name), operator=op, value_source=str(source))

    def to_dict(self) -> dict[str, str]:
        return {
            "field": self.field,
            "operator": self.operator.value,
            "valueSource": self.value_source,
        }


def _parse_conditions(raw: Any) -> tuple[Condition, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        raise ConfigurationError(
            "Policy conditions must be a list", {"conditions": repr(raw)}
        )
    return tuple(c if isinstance(c, Condition) else Condition.from_dict(c) for c in raw)


@dataclass(frozen=True)
class Policy:
    """Effect, scope and conditions one role grants for one capability."""

    effect: PolicyEffect
    scope: Scope = Scope.SELF
    conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Policy":
        """Build from an admin payload or stored values.

        Missing effect defaults to allow and missing scope to self.

        Raises:
            ConfigurationError: If effect, scope or conditions are malformed.
        """
        try:
            effect = PolicyEffect(data.get("effect", PolicyEffect.ALLOW.value))
            scope = Scope(data.get("scope", Scope.SELF.value))
        except ValueError as e:
            raise ConfigurationError(
                f"Malformed policy: {e}",
                {"effect": data.get("effect"), "scope": data.get("scope")},
            ) from e
        if effect == PolicyEffect.ALLOW and scope == Scope.NONE:
            raise ConfigurationError(
                "Malformed policy: allow requires a scope other than none",
                {"effect": effect.value, "scope": scope.value},
            )
        return cls(effect=effect, scope=scope, conditions=_parse_conditions(data.get("conditions")))

    @classmethod
    def allow(cls, scope: Scope, conditions: Iterable[Condition] = ()) -> "Policy":
        return cls(effect=PolicyEffect.ALLOW, scope=scope, conditions=tuple(conditions))

    @classmethod
    def deny(cls) -> "Policy":
        return cls(effect=PolicyEffect.DENY, scope=Scope.NONE)

    @property
    def is_deny(self) -> bool:
        return self.effect == PolicyEffect.DENY

    def conditions_json(self) -> str:
        """Canonical JSON of the conditions (used to break merge ties)."""
        return json.dumps([c.to_dict() for c in self.conditions], sort_keys=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "effect": self.effect.value,
            "scope": self.scope.value,
            "conditions": [c.to_dict() for c in self.conditions],
        }


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check.

    Denials always carry scope none and no conditions.
    """

    allowed: bool
    scope: Scope
    reason: DecisionReason
    conditions: tuple[Condition, ...] = ()
    resource: str | None = None
    action: str | None = None

    @classmethod
    def deny(
        cls,
        reason: DecisionReason,
        resource: str | None = None,
        action: str | None = None,
    ) -> "Decision":
        return cls(
            allowed=False,
            scope=Scope.NONE,
            reason=reason,
            resource=resource,
            action=action,
        )

    @classmethod
    def grant(
        cls,
        policy: Policy,
        resource: str | None = None,
        action: str | None = None,
    ) -> "Decision":
        return cls(
            allowed=True,
            scope=policy.scope,
            reason=DecisionReason.POLICY_ALLOW,
            conditions=policy.conditions,
            resource=resource,
            action=action,
        )

    def for_capability(self, resource: str, action: str) -> "Decision":
        """Return a copy labelled with the requested capability."""
        if self.resource == resource and self.action == action:
            return self
        return replace(self, resource=resource, action=action)

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "scope": self.scope.value,
            "reason": self.reason.value,
            "conditions": [c.to_dict() for c in self.conditions],
            "resource": self.resource,
            "action": self.action,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Decision":
        """Rebuild a decision serialized with to_dict (cached permission maps).

        Raises:
            ConfigurationError: If the payload is malformed.
        """
        try:
            return cls(
                allowed=bool(data["allowed"]),
                scope=Scope(data["scope"]),
                reason=DecisionReason(data["reason"]),
                conditions=_parse_conditions(data.get("conditions")),
                resource=data.get("resource"),
                action=data.get("action"),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Malformed decision payload: {e}") from e


# Permission map: "resource:action" -> merged decision for one (tenant, user).
PermissionMap = dict[str, Decision]


def _pick_widest(allows: list[Policy]) -> Policy:
    # Highest rank wins; ties go to fewer conditions, then canonical JSON.
    return min(
        allows,
        key=lambda p: (-p.scope.rank, len(p.conditions), p.conditions_json()),
    )


def merge_policies(
    policies: Iterable[Policy],
    resource: str | None = None,
    action: str | None = None,
) -> Decision:
    """Merge the policies of several roles for one capability.

    Empty input denies with NO_MATCHING_POLICY. Any deny wins over every
    allow (EXPLICIT_DENY). Otherwise the allow with the highest scope rank
    is returned with its own conditions.
    """
    allows: list[Policy] = []
    for policy in policies:
        if policy.is_deny:
            return Decision.deny(DecisionReason.EXPLICIT_DENY, resource, action)
        allows.append(policy)
    if not allows:
        return Decision.deny(DecisionReason.NO_MATCHING_POLICY, resource, action)
    return Decision.grant(_pick_widest(allows), resource, action)


def build_permission_map(entries: Iterable[tuple[str, str, Policy]]) -> PermissionMap:
    """Merge (resource, action, policy) entries into a permission map.

    Capabilities with no entry are absent from the map; a lookup miss means
    NO_MATCHING_POLICY.
    """
    grouped: dict[tuple[str, str], list[Policy]] = defaultdict(list)
    for resource, action, policy in entries:
        grouped[(resource, action)].append(policy)
    return {
        catalog.permission_code(resource, action): merge_policies(policies, resource, action)
        for (resource, action), policies in grouped.items()
    }


def lookup(permissions: Mapping[str, Decision], resource: str, action: str) -> Decision:
    """Return the decision for a capability from a permission map."""
    decision = permissions.get(catalog.permission_code(resource, action))
    if decision is None:
        return Decision.deny(DecisionReason.NO_MATCHING_POLICY, resource, action)
    return decision.for_capability(resource, action)


def allowed_access(permissions: Mapping[str, Decision]) -> dict[str, list[str]]:
    """Summarize a permission map as ``{resource: [allowed actions]}``."""
    access: dict[str, list[str]] = defaultdict(list)
    for code, decision in permissions.items():
        if decision.allowed:
            resource, action = catalog.split_permission_code(code)
            access[resource].append(action)
    return {resource: sorted(actions) for resource, actions in sorted(access.items())}


def actions_for_level(resource: str, level: PermissionLevel) -> tuple[str, ...]:
    """Actions a level grants on a module (none grants nothing)."""
    module = catalog.get_module(resource)
    if level == PermissionLevel.FULL:
        return module.actions
    if level == PermissionLevel.LIMITED:
        return module.limited_actions
    if level == PermissionLevel.READ:
        return ("read",)
    return ()


def level_to_policy(
    level: PermissionLevel | str,
    resource: str,
    action: str,
    *,
    system_role: bool = False,
    conditions: Iterable[Condition] = (),
) -> Policy:
    """Expand an administrative level into a policy for one capability.

    none -> deny; read -> allow at tenant scope (read only); limited ->
    allow at the module's limited scope for its limited actions; full ->
    allow at tenant scope, or all for system roles.

    Raises:
        ConfigurationError: If the capability is not in the catalog.
        ValidationException: If the level is unknown or does not grant the action.
    """
    module = catalog.require(resource, action)
    try:
        level = PermissionLevel(level)
    except ValueError as e:
        raise ValidationException(
            f"Unknown permission level: {level!r}", field="level"
        ) from e
    if level == PermissionLevel.NONE:
        return Policy.deny()
    if action not in actions_for_level(resource, level):
        raise ValidationException(
            f"Level {level.value!r} does not grant {action!r} on {resource!r}",
            field="level",
        )
    if level == PermissionLevel.READ:
        return Policy.allow(Scope.TENANT, conditions)
    if level == PermissionLevel.LIMITED:
        return Policy.allow(module.limited_scope, conditions)
    return Policy.allow(Scope.ALL if system_role else Scope.TENANT, conditions)


def infer_level(policy: Policy) -> PermissionLevel:
    """Best-effort level label for an explicit policy written without one."""
    if policy.is_deny or policy.scope == Scope.NONE:
        return PermissionLevel.NONE
    if policy.scope in (Scope.SELF, Scope.OWNED):
        return PermissionLevel.LIMITED
    return PermissionLevel.FULL
