"""Capability catalog: the closed set of (resource, action) pairs.

Every resource is a school-ERP module. Each module declares which actions
the ``limited`` level grants, the scope that level maps to, and the record
field that identifies an owned record. Authorization checks against an
unknown pair raise ConfigurationError instead of denying.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from rbac_engine.core.constants import (
    PERMISSION_CODE_SEP,
    VALUE_SOURCE_TENANT_ID,
    VALUE_SOURCE_USER_ID,
)
from rbac_engine.domain.enums import Scope
from rbac_engine.domain.exceptions import ConfigurationError

ACTIONS: tuple[str, ...] = ("create", "read", "update", "delete", "export")


@dataclass(frozen=True)
class ModuleDefinition:
    """One catalog resource and its level mapping."""

    resource: str
    label: str
    limited_actions: tuple[str, ...] = ("read",)
    limited_scope: Scope = Scope.OWNED
    owner_field: str = "ownerId"
    owner_source: str = VALUE_SOURCE_USER_ID
    actions: tuple[str, ...] = ACTIONS

    def describe(self, action: str) -> str:
        return f"{action.upper()} action on {self.resource} resource"


_MODULE_LIST: tuple[ModuleDefinition, ...] = (
    ModuleDefinition(
        "tenant_management", "Tenant Mgmt & Billing",
        limited_actions=("read", "update"), owner_field="id",
        owner_source=VALUE_SOURCE_TENANT_ID,
    ),
    ModuleDefinition("school_config", "School Config & Academic Year"),
    ModuleDefinition(
        "user_management", "User & Role Mgmt",
        limited_actions=("read", "create", "update"), owner_field="managerId",
    ),
    ModuleDefinition("students", "Student Info (SIS)", owner_field="userId"),
    ModuleDefinition(
        "admissions", "Admissions & Enquiries",
        limited_actions=("read", "create"), owner_field="createdBy",
    ),
    ModuleDefinition("fees", "Fees & Payments", owner_field="payerId"),
    ModuleDefinition(
        "attendance_students", "Attendance (Students)",
        limited_actions=("read", "create"), owner_field="studentUserId",
    ),
    ModuleDefinition(
        "attendance_staff", "Attendance (Staff)",
        limited_actions=("read", "create"), limited_scope=Scope.SELF,
        owner_field="staffUserId",
    ),
    ModuleDefinition("timetable", "Timetable & Scheduling", owner_field="teacherId"),
    ModuleDefinition(
        "exams", "Exams & Report Cards",
        limited_actions=("read", "create", "update"), owner_field="teacherId",
    ),
    ModuleDefinition(
        "communication", "Communication & Notifications",
        limited_actions=("read", "create"), owner_field="senderId",
    ),
    ModuleDefinition("transport", "Transport Mgmt", owner_field="managerId"),
    ModuleDefinition("library", "Library Mgmt", owner_field="borrowerId"),
    ModuleDefinition("hostel", "Hostel Mgmt", owner_field="wardenId"),
    ModuleDefinition(
        "hr_payroll", "HR & Payroll",
        limited_scope=Scope.SELF, owner_field="staffUserId",
    ),
    ModuleDefinition(
        "inventory", "Inventory & Assets",
        limited_actions=("read", "update"), owner_field="custodianId",
    ),
    ModuleDefinition(
        "lms", "LMS / Online Learning",
        limited_actions=("read", "create"), owner_field="ownerId",
    ),
    ModuleDefinition("analytics", "Analytics & Reports", owner_field="ownerId"),
    ModuleDefinition(
        "technical_ops", "Technical Ops (Backups, Logs)",
        owner_field="tenantId", owner_source=VALUE_SOURCE_TENANT_ID,
    ),
    ModuleDefinition(
        "data_export", "Data Export & Compliance",
        limited_actions=("read", "export"), owner_field="requestedBy",
    ),
)

MODULES: dict[str, ModuleDefinition] = {m.resource: m for m in _MODULE_LIST}


def permission_code(resource: str, action: str) -> str:
    """Render a capability as ``resource:action`` (permission map key)."""
    return f"{resource}{PERMISSION_CODE_SEP}{action}"


def split_permission_code(code: str) -> tuple[str, str]:
    resource, sep, action = code.rpartition(PERMISSION_CODE_SEP)
    if not sep or not resource or not action:
        raise ConfigurationError(
            f"Malformed permission code: {code!r}", {"permission_code": code}
        )
    return resource, action


def is_known(resource: str, action: str) -> bool:
    module = MODULES.get(resource)
    return module is not None and action in module.actions


def get_module(resource: str) -> ModuleDefinition:
    """Return the module definition for a resource.

    Raises:
        ConfigurationError: If the resource is not in the catalog.
    """
    module = MODULES.get(resource)
    if module is None:
        raise ConfigurationError(
            f"Unknown resource: {resource!r}", {"resource": resource}
        )
    return module


def require(resource: str, action: str) -> ModuleDefinition:
    """Validate a capability against the catalog.

    Raises:
        ConfigurationError: If the resource or action is unknown.
    """
    module = get_module(resource)
    if action not in module.actions:
        raise ConfigurationError(
            f"Unknown action {action!r} for resource {resource!r}",
            {"resource": resource, "action": action},
        )
    return module


def iter_capabilities() -> Iterator[tuple[ModuleDefinition, str]]:
    """Yield every (module, action) pair in catalog order."""
    for module in _MODULE_LIST:
        for action in module.actions:
            yield module, action
