"""Role ORM model. System roles (tenant_id NULL) or tenant-scoped roles."""

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rbac_engine.infrastructure.persistence.database import Base
from rbac_engine.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class Role(CuidMixin, TimestampMixin, Base):
    """Role. Table: role. code is the rendered RoleKey and is globally unique.

    A system role has no tenant; a tenant role always has one.
    """

    __tablename__ = "role"

    tenant_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=True, index=True
    )
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system_role: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "(is_system_role AND tenant_id IS NULL) "
            "OR (NOT is_system_role AND tenant_id IS NOT NULL)",
            name="ck_role_system_scope",
        ),
        Index("ix_role_system", "is_system_role"),
    )
