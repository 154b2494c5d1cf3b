"""Tests for the capability catalog (modules, actions, per-module limited table)."""

import pytest

from rbac_engine.domain import catalog
from rbac_engine.domain.enums import Scope
from rbac_engine.domain.exceptions import ConfigurationError


def test_catalog_has_twenty_modules_and_one_hundred_capabilities() -> None:
    assert len(catalog.MODULES) == 20
    assert len(list(catalog.iter_capabilities())) == 100


def test_every_module_exposes_the_five_actions() -> None:
    for module in catalog.MODULES.values():
        assert module.actions == ("create", "read", "update", "delete", "export")


def test_limited_actions_are_a_subset_of_module_actions() -> None:
    """The limited level can never grant an action outside the module."""
    for module in catalog.MODULES.values():
        assert module.limited_actions
        assert set(module.limited_actions) <= set(module.actions)
        assert module.limited_scope in (Scope.SELF, Scope.OWNED)


def test_limited_actions_vary_per_module() -> None:
    """limited means read-only on some modules and read+create on others."""
    assert catalog.get_module("students").limited_actions == ("read",)
    assert catalog.get_module("admissions").limited_actions == ("read", "create")
    assert catalog.get_module("data_export").limited_actions == ("read", "export")
    assert catalog.get_module("attendance_staff").limited_scope == Scope.SELF


def test_require_returns_module_for_known_capability() -> None:
    module = catalog.require("fees", "create")
    assert module.resource == "fees"


def test_require_unknown_resource_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Unknown resource") as exc_info:
        catalog.require("classes", "read")
    assert exc_info.value.error_code == "CONFIGURATION_ERROR"
    assert exc_info.value.details == {"resource": "classes"}


def test_require_unknown_action_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Unknown action"):
        catalog.require("fees", "list")


def test_is_known() -> None:
    assert catalog.is_known("lms", "export")
    assert not catalog.is_known("lms", "archive")
    assert not catalog.is_known("payroll", "read")


def test_permission_code_and_split() -> None:
    code = catalog.permission_code("hr_payroll", "read")
    assert code == "hr_payroll:read"
    assert catalog.split_permission_code(code) == ("hr_payroll", "read")


@pytest.mark.parametrize("code", ["fees", ":read", "fees:", ""])
def test_split_malformed_permission_code_raises(code: str) -> None:
    with pytest.raises(ConfigurationError, match="Malformed permission code"):
        catalog.split_permission_code(code)


def test_describe_action() -> None:
    assert catalog.get_module("fees").describe("create") == "CREATE action on fees resource"
