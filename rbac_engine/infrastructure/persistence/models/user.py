"""User ORM model (principal directory, tenant-scoped, read-only to the engine)."""

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rbac_engine.domain.enums import UserStatus
from rbac_engine.infrastructure.persistence.database import Base
from rbac_engine.infrastructure.persistence.models.mixins import (
    MultiTenantModel,
    in_check,
)


class User(MultiTenantModel, Base):
    """User. Table: app_user. Unique (tenant_id, email). tenant_id is the home tenant."""

    __tablename__ = "app_user"

    email: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=UserStatus.ACTIVE.value
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_tenant_email"),
        CheckConstraint(in_check("status", UserStatus.values()), name="user_status_check"),
    )
