"""Domain exceptions for the RBAC engine.

Defines the errors raised across the engine. Denials are normally returned
as Decision values; exceptions are reserved for programming errors
(unknown capabilities, malformed policy data), invalid administrative
input, the opt-in ``require`` path, and transient store failures that the
gate turns into a fail-closed decision.
"""

from typing import Any


class RbacException(Exception):
    """Base exception for all RBAC engine errors.

    Callers map these to their own transport using message, error_code,
    and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. resource, action, role_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(RbacException):
    """Raised when administrative input is invalid (level, scope, role shape)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ConfigurationError(RbacException):
    """Raised for programming errors: unknown capabilities or malformed policy data.

    Never converted into a denial; it surfaces to the caller so the mistake
    is fixed rather than silently refused.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "CONFIGURATION_ERROR", details)


class AuthorizationDenied(RbacException):
    """Raised by AuthorizationService.require when the decision is a denial."""

    def __init__(self, resource: str, action: str, reason: str) -> None:
        """Initialize with the denied capability and the decision reason.

        Args:
            resource: Resource that was requested (e.g. 'students').
            action: Action that was requested (e.g. 'read').
            reason: Decision reason code (e.g. 'NO_MATCHING_POLICY').
        """
        self.resource = resource
        self.action = action
        self.reason = reason
        super().__init__(
            f"Permission denied: {action} on {resource}",
            "PERMISSION_DENIED",
            {"resource": resource, "action": action, "reason": reason},
        )


class TransientStoreError(RbacException):
    """Raised when the policy store cannot be reached (connection loss, timeout).

    The gate retries these and then returns a STORE_UNAVAILABLE denial.
    """

    def __init__(self, operation: str, cause: str) -> None:
        """Initialize with the failed store operation and the underlying cause.

        Args:
            operation: Store operation name (e.g. 'get_user_roles').
            cause: String form of the driver error.
        """
        super().__init__(
            f"Policy store unavailable during {operation}",
            "STORE_UNAVAILABLE",
            {"operation": operation, "cause": cause},
        )


class ResourceNotFoundException(RbacException):
    """Raised when a role, user, or tenant referenced by an admin call is missing."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'role', 'tenant').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class DuplicateAssignmentException(RbacException):
    """Raised when a role assignment or role code already exists."""

    def __init__(
        self,
        message: str,
        assignment_type: str,
        details_extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with message and assignment context.

        Args:
            message: Human-readable description (e.g. 'Role already assigned to user').
            assignment_type: 'user_role' or 'role'.
            details_extra: Optional extra keys (e.g. role_id, user_id).
        """
        details = dict(details_extra or {})
        details["assignment_type"] = assignment_type
        super().__init__(message, "DUPLICATE_ASSIGNMENT", details)
