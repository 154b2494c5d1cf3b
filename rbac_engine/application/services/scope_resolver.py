"""Scope resolver: turns a decision into a storage-agnostic row filter.

The filter contract is data (scope + conditions + match_nothing). Two
reference translators apply it: ``matches`` for in-memory records and
``apply_to_select`` for SQLAlchemy selects. Record fields use the
camelCase names found in policies (``teacherId``); SQL columns are found
through an explicit column map or by converting to snake_case.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Mapping
from typing import Any

from sqlalchemy import Select, false

from rbac_engine.application.dtos.authorization import FilterContract, UserContext
from rbac_engine.core.constants import (
    TENANT_FIELD,
    VALUE_SOURCE_TENANT_ID,
    VALUE_SOURCE_USER_ID,
)
from rbac_engine.domain import catalog
from rbac_engine.domain.enums import ConditionOperator, Scope
from rbac_engine.domain.exceptions import ConfigurationError
from rbac_engine.domain.policy import Condition, Decision

_CAMEL_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")

_UNRESOLVED = object()

TENANT_CONDITION = Condition(
    field=TENANT_FIELD,
    operator=ConditionOperator.EQ,
    value_source=VALUE_SOURCE_TENANT_ID,
)


def _is_collection(value: Any) -> bool:
    return isinstance(value, Collection) and not isinstance(value, (str, bytes))


class ScopeResolver:
    """Derives FilterContracts and applies them to records or SQL selects."""

    def to_filter_contract(self, decision: Decision) -> FilterContract:
        """Build the row filter for a decision.

        Denials and scope none match nothing. all adds no predicate. Every
        other scope pins rows to the caller's tenant first. tenant adds the
        policy conditions. self and owned add the policy conditions, or the
        module's ownership predicate when the policy has none, and match
        nothing when neither exists.
        """
        if not decision.allowed or decision.scope == Scope.NONE:
            return FilterContract(
                allowed=decision.allowed,
                scope=Scope.NONE,
                conditions=(),
                match_nothing=True,
            )
        if decision.scope == Scope.ALL:
            return FilterContract(
                allowed=True, scope=Scope.ALL, conditions=(), match_nothing=False
            )
        if decision.scope == Scope.TENANT:
            predicates = decision.conditions
        else:
            predicates = decision.conditions or self._ownership_conditions(decision)
            if not predicates:
                return FilterContract(
                    allowed=True, scope=decision.scope, conditions=(), match_nothing=True
                )
        extra = tuple(c for c in predicates if c != TENANT_CONDITION)
        return FilterContract(
            allowed=True,
            scope=decision.scope,
            conditions=(TENANT_CONDITION, *extra),
            match_nothing=False,
        )

    @staticmethod
    def _ownership_conditions(decision: Decision) -> tuple[Condition, ...]:
        if decision.resource is None:
            return ()
        module = catalog.get_module(decision.resource)
        return (
            Condition(
                field=module.owner_field,
                operator=ConditionOperator.EQ,
                value_source=module.owner_source,
            ),
        )

    @staticmethod
    def resolve_value(value_source: str, context: UserContext) -> Any:
        """Value a condition compares against, or the module sentinel when unresolved."""
        if value_source == VALUE_SOURCE_USER_ID:
            return context.user_id
        if value_source == VALUE_SOURCE_TENANT_ID:
            return context.tenant_id
        value = context.attributes.get(value_source)
        return _UNRESOLVED if value is None else value

    @staticmethod
    def is_resolved(value: Any) -> bool:
        return value is not _UNRESOLVED

    def matches(
        self,
        record: Mapping[str, Any],
        contract: FilterContract,
        context: UserContext,
    ) -> bool:
        """True when an in-memory record passes the contract.

        A missing record field or an unresolved value source never matches.
        """
        if contract.match_nothing:
            return False
        for condition in contract.conditions:
            value = self.resolve_value(condition.value_source, context)
            if not self.is_resolved(value) or condition.field not in record:
                return False
            if not _compare(record[condition.field], condition.operator, value):
                return False
        return True

    def apply_to_select(
        self,
        stmt: Select[Any],
        model: type[Any],
        contract: FilterContract,
        context: UserContext,
        column_map: Mapping[str, str] | None = None,
    ) -> Select[Any]:
        """Add the contract's predicates to a select over ``model``.

        Raises:
            ConfigurationError: If a condition field has no matching column.
        """
        if contract.match_nothing:
            return stmt.where(false())
        clauses = []
        for condition in contract.conditions:
            column = _column_for(model, condition.field, column_map)
            value = self.resolve_value(condition.value_source, context)
            if not self.is_resolved(value):
                return stmt.where(false())
            clauses.append(_clause(column, condition.operator, value))
        return stmt.where(*clauses) if clauses else stmt


def _compare(field_value: Any, operator: ConditionOperator, value: Any) -> bool:
    if operator == ConditionOperator.EQ:
        return field_value == value
    if operator == ConditionOperator.NE:
        return field_value != value
    if operator == ConditionOperator.IN:
        return _is_collection(value) and field_value in value
    if operator == ConditionOperator.NOT_IN:
        return _is_collection(value) and field_value not in value
    if operator == ConditionOperator.CONTAINS:
        return _is_collection(field_value) and value in field_value
    return False


def _column_for(model: type[Any], field: str, column_map: Mapping[str, str] | None) -> Any:
    name = (column_map or {}).get(field)
    candidates = [name] if name else [field, _CAMEL_BOUNDARY_RE.sub("_", field).lower()]
    for candidate in candidates:
        column = getattr(model, candidate, None)
        if column is not None:
            return column
    raise ConfigurationError(
        f"No column for condition field {field!r} on {model.__name__}",
        {"field": field, "model": model.__name__},
    )


def _clause(column: Any, operator: ConditionOperator, value: Any) -> Any:
    if operator == ConditionOperator.EQ:
        return column == value
    if operator == ConditionOperator.NE:
        return column != value
    if operator in (ConditionOperator.IN, ConditionOperator.NOT_IN):
        if not _is_collection(value):
            return false()
        values = list(value)
        return column.in_(values) if operator == ConditionOperator.IN else column.not_in(values)
    # contains: array/JSON containment on the column
    return column.contains(value)
