"""Permission, RolePermission (policy), and UserRole ORM models (RBAC)."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from rbac_engine.domain.enums import PermissionLevel, PolicyEffect, Scope
from rbac_engine.infrastructure.persistence.database import Base
from rbac_engine.infrastructure.persistence.models.mixins import (
    CuidMixin,
    TimestampMixin,
    in_check,
)
from rbac_engine.shared.utils.datetime import utc_now


class Permission(CuidMixin, TimestampMixin, Base):
    """Catalog capability. Table: permission. Unique (resource, action)."""

    __tablename__ = "permission"

    resource: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("resource", "action", name="uq_permission_resource_action"),
    )


class RolePermission(CuidMixin, TimestampMixin, Base):
    """Policy a role holds for one permission. Table: role_permission.

    conditions is an ordered JSON list of {field, operator, valueSource}.
    """

    __tablename__ = "role_permission"

    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[str] = mapped_column(
        String, ForeignKey("permission.id", ondelete="CASCADE"), nullable=False
    )
    level: Mapped[str] = mapped_column(
        String, nullable=False, default=PermissionLevel.NONE.value
    )
    effect: Mapped[str] = mapped_column(
        String, nullable=False, default=PolicyEffect.ALLOW.value
    )
    scope: Mapped[str] = mapped_column(String, nullable=False, default=Scope.SELF.value)
    conditions: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        Index("ix_role_permission_role", "role_id"),
        CheckConstraint(in_check("level", PermissionLevel.values()), name="ck_role_permission_level"),
        CheckConstraint(in_check("effect", PolicyEffect.values()), name="ck_role_permission_effect"),
        CheckConstraint(in_check("scope", Scope.values()), name="ck_role_permission_scope"),
    )


class UserRole(CuidMixin, Base):
    """Role assignment. Table: user_role.

    tenant_id is NULL for a global system-role grant. Uniqueness of
    (user_id, role_id, tenant_id) including NULL tenants is also enforced
    by UserRoleRepository.
    """

    __tablename__ = "user_role"

    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=True
    )
    assigned_by: Mapped[str | None] = mapped_column(
        String, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", "tenant_id", name="uq_user_role_tenant"),
        Index("ix_user_role_lookup", "user_id", "tenant_id"),
        Index("ix_user_role_role", "role_id"),
    )
