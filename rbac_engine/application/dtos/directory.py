"""DTOs for the identity directory (tenants and principals)."""

from dataclasses import dataclass

from rbac_engine.domain.enums import TenantStatus, UserStatus


@dataclass(frozen=True)
class TenantResult:
    """Tenant read-model."""

    id: str
    code: str
    name: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE.value


@dataclass(frozen=True)
class UserResult:
    """Principal read-model. tenant_id is the user's home tenant."""

    id: str
    tenant_id: str
    email: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value
