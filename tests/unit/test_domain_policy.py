"""Tests for policies, decisions, the merge rule and level expansion."""

from itertools import permutations

import pytest

from rbac_engine.domain.enums import (
    ConditionOperator,
    DecisionReason,
    PermissionLevel,
    PolicyEffect,
    Scope,
)
from rbac_engine.domain.exceptions import ConfigurationError, ValidationException
from rbac_engine.domain.policy import (
    Condition,
    Decision,
    Policy,
    actions_for_level,
    allowed_access,
    build_permission_map,
    infer_level,
    level_to_policy,
    lookup,
    merge_policies,
)

TEACHER_OWNS = Condition("teacherId", ConditionOperator.EQ, "userId")
IN_CLASSES = Condition("classId", ConditionOperator.IN, "classIds")


class TestCondition:
    def test_from_dict_accepts_both_spellings(self) -> None:
        a = Condition.from_dict({"field": "teacherId", "operator": "eq", "valueSource": "userId"})
        b = Condition.from_dict({"field": "teacherId", "op": "eq", "value_source": "userId"})
        assert a == b == TEACHER_OWNS

    def test_to_dict(self) -> None:
        assert TEACHER_OWNS.to_dict() == {
            "field": "teacherId",
            "operator": "eq",
            "valueSource": "userId",
        }

    def test_missing_key_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="requires field"):
            Condition.from_dict({"field": "teacherId", "operator": "eq"})

    def test_unknown_operator_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown condition operator"):
            Condition.from_dict({"field": "a", "operator": "like", "valueSource": "userId"})

    def test_non_mapping_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="must be an object"):
            Condition.from_dict("teacherId = userId")  # type: ignore[arg-type]


class TestPolicy:
    def test_from_dict_defaults_to_allow_self(self) -> None:
        policy = Policy.from_dict({})
        assert policy.effect == PolicyEffect.ALLOW
        assert policy.scope == Scope.SELF
        assert policy.conditions == ()

    def test_from_dict_with_conditions(self) -> None:
        policy = Policy.from_dict(
            {"effect": "allow", "scope": "owned", "conditions": [TEACHER_OWNS.to_dict()]}
        )
        assert policy == Policy.allow(Scope.OWNED, [TEACHER_OWNS])

    @pytest.mark.parametrize(
        "data",
        [
            {"effect": "maybe"},
            {"scope": "galaxy"},
            {"conditions": "teacherId"},
            {"conditions": [{"field": "x"}]},
            {"effect": "allow", "scope": "none"},
            {"scope": "none"},
        ],
    )
    def test_malformed_raises_configuration_error(self, data: dict) -> None:
        with pytest.raises(ConfigurationError):
            Policy.from_dict(data)

    def test_deny_has_scope_none(self) -> None:
        policy = Policy.deny()
        assert policy.is_deny
        assert policy.scope == Scope.NONE

    def test_stored_deny_with_scope_none_is_valid(self) -> None:
        assert Policy.from_dict({"effect": "deny", "scope": "none"}) == Policy.deny()

    def test_to_dict_round_trips(self) -> None:
        policy = Policy.allow(Scope.TENANT, [IN_CLASSES])
        assert Policy.from_dict(policy.to_dict()) == policy


class TestMergePolicies:
    def test_empty_is_no_matching_policy(self) -> None:
        decision = merge_policies([], "fees", "read")
        assert not decision.allowed
        assert decision.reason == DecisionReason.NO_MATCHING_POLICY
        assert decision.scope == Scope.NONE

    @pytest.mark.parametrize(
        "policies",
        list(permutations([Policy.allow(Scope.ALL), Policy.deny(), Policy.allow(Scope.SELF)])),
    )
    def test_deny_overrides_allow_in_any_order(self, policies: tuple[Policy, ...]) -> None:
        decision = merge_policies(policies)
        assert not decision.allowed
        assert decision.reason == DecisionReason.EXPLICIT_DENY
        assert decision.conditions == ()

    def test_highest_scope_wins_with_its_conditions(self) -> None:
        owned = Policy.allow(Scope.OWNED, [TEACHER_OWNS])
        tenant = Policy.allow(Scope.TENANT, [IN_CLASSES])
        decision = merge_policies([owned, tenant], "students", "read")
        assert decision.allowed
        assert decision.reason == DecisionReason.POLICY_ALLOW
        assert decision.scope == Scope.TENANT
        assert decision.conditions == (IN_CLASSES,)
        assert (decision.resource, decision.action) == ("students", "read")

    def test_equal_rank_tie_break_is_order_independent(self) -> None:
        a = Policy.allow(Scope.OWNED, [TEACHER_OWNS])
        b = Policy.allow(Scope.OWNED, [IN_CLASSES])
        c = Policy.allow(Scope.OWNED, [TEACHER_OWNS, IN_CLASSES])
        results = {merge_policies(p) for p in permutations([a, b, c])}
        assert len(results) == 1
        (decision,) = results
        assert len(decision.conditions) == 1

    def test_fewer_conditions_win_ties(self) -> None:
        narrow = Policy.allow(Scope.OWNED, [TEACHER_OWNS, IN_CLASSES])
        broad = Policy.allow(Scope.OWNED)
        assert merge_policies([narrow, broad]).conditions == ()

    @pytest.mark.parametrize("extra_scope", list(Scope)[1:])
    def test_adding_an_allow_never_narrows_scope(self, extra_scope: Scope) -> None:
        base = [Policy.allow(Scope.OWNED), Policy.allow(Scope.SELF)]
        before = merge_policies(base)
        after = merge_policies([*base, Policy.allow(extra_scope)])
        assert after.allowed
        assert after.scope.rank >= before.scope.rank


class TestDecision:
    def test_deny_helper(self) -> None:
        decision = Decision.deny(DecisionReason.STORE_UNAVAILABLE, "fees", "read")
        assert not decision.allowed
        assert decision.scope == Scope.NONE

    def test_round_trip_through_dict(self) -> None:
        decision = Decision.grant(Policy.allow(Scope.OWNED, [TEACHER_OWNS]), "students", "read")
        assert Decision.from_dict(decision.to_dict()) == decision

    @pytest.mark.parametrize(
        "data",
        [{}, {"allowed": True, "scope": "wide", "reason": "POLICY_ALLOW"}, {"allowed": True}],
    )
    def test_from_dict_malformed(self, data: dict) -> None:
        with pytest.raises(ConfigurationError, match="Malformed decision"):
            Decision.from_dict(data)


class TestPermissionMap:
    def test_build_merges_per_capability(self) -> None:
        permissions = build_permission_map(
            [
                ("fees", "read", Policy.allow(Scope.OWNED)),
                ("fees", "read", Policy.allow(Scope.TENANT)),
                ("fees", "delete", Policy.allow(Scope.TENANT)),
                ("fees", "delete", Policy.deny()),
            ]
        )
        assert set(permissions) == {"fees:read", "fees:delete"}
        assert permissions["fees:read"].scope == Scope.TENANT
        assert permissions["fees:delete"].reason == DecisionReason.EXPLICIT_DENY

    def test_lookup_miss_is_no_matching_policy(self) -> None:
        decision = lookup({}, "fees", "read")
        assert decision.reason == DecisionReason.NO_MATCHING_POLICY
        assert decision.resource == "fees"

    def test_lookup_hit_agrees_with_direct_merge(self) -> None:
        policies = [Policy.allow(Scope.OWNED, [TEACHER_OWNS]), Policy.allow(Scope.SELF)]
        permissions = build_permission_map(("students", "read", p) for p in policies)
        assert lookup(permissions, "students", "read") == merge_policies(
            policies, "students", "read"
        )

    def test_allowed_access_lists_allowed_actions_only(self) -> None:
        permissions = build_permission_map(
            [
                ("lms", "read", Policy.allow(Scope.TENANT)),
                ("lms", "create", Policy.allow(Scope.OWNED)),
                ("fees", "read", Policy.deny()),
            ]
        )
        assert allowed_access(permissions) == {"lms": ["create", "read"]}


class TestLevels:
    def test_actions_for_level(self) -> None:
        assert actions_for_level("exams", PermissionLevel.NONE) == ()
        assert actions_for_level("exams", PermissionLevel.READ) == ("read",)
        assert actions_for_level("exams", PermissionLevel.LIMITED) == ("read", "create", "update")
        assert len(actions_for_level("exams", PermissionLevel.FULL)) == 5

    def test_none_is_deny(self) -> None:
        assert level_to_policy("none", "fees", "read") == Policy.deny()

    def test_read_is_tenant_scope(self) -> None:
        assert level_to_policy("read", "fees", "read") == Policy.allow(Scope.TENANT)

    def test_read_does_not_grant_create(self) -> None:
        with pytest.raises(ValidationException, match="does not grant"):
            level_to_policy("read", "fees", "create")

    def test_limited_uses_module_scope(self) -> None:
        assert level_to_policy("limited", "students", "read").scope == Scope.OWNED
        assert level_to_policy("limited", "hr_payroll", "read").scope == Scope.SELF

    def test_limited_outside_module_table_rejected(self) -> None:
        with pytest.raises(ValidationException):
            level_to_policy("limited", "students", "create")

    def test_full_scope_depends_on_role_kind(self) -> None:
        assert level_to_policy("full", "fees", "delete").scope == Scope.TENANT
        assert level_to_policy("full", "fees", "delete", system_role=True).scope == Scope.ALL

    def test_conditions_are_carried(self) -> None:
        policy = level_to_policy("limited", "students", "read", conditions=[TEACHER_OWNS])
        assert policy.conditions == (TEACHER_OWNS,)

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValidationException, match="Unknown permission level"):
            level_to_policy("custom", "fees", "read")

    def test_unknown_capability_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            level_to_policy("full", "classes", "read")

    @pytest.mark.parametrize(
        ("policy", "level"),
        [
            (Policy.deny(), PermissionLevel.NONE),
            (Policy.allow(Scope.SELF), PermissionLevel.LIMITED),
            (Policy.allow(Scope.OWNED), PermissionLevel.LIMITED),
            (Policy.allow(Scope.TENANT), PermissionLevel.FULL),
            (Policy.allow(Scope.ALL), PermissionLevel.FULL),
        ],
    )
    def test_infer_level(self, policy: Policy, level: PermissionLevel) -> None:
        assert infer_level(policy) == level
