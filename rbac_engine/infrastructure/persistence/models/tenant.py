"""Tenant ORM model. Isolation boundary for roles and assignments (read-only to the engine)."""

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from rbac_engine.domain.enums import TenantStatus
from rbac_engine.infrastructure.persistence.database import Base
from rbac_engine.infrastructure.persistence.models.mixins import (
    CuidMixin,
    TimestampMixin,
    in_check,
)


class Tenant(CuidMixin, TimestampMixin, Base):
    """Tenant (school). Table: tenant. Status: active, suspended, archived."""

    __tablename__ = "tenant"

    code: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=TenantStatus.ACTIVE.value, index=True
    )

    __table_args__ = (
        CheckConstraint(
            in_check("status", TenantStatus.values()), name="tenant_status_check"
        ),
    )
