"""Authorization audit ORM model. Append-only record of gate decisions."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Connection, DateTime, Index, String, event
from sqlalchemy.orm import Mapped, Mapper, mapped_column
from sqlalchemy.sql import func

from rbac_engine.infrastructure.persistence.database import Base
from rbac_engine.shared.utils.datetime import utc_now
from rbac_engine.shared.utils.generators import generate_cuid


class AuthorizationAudit(Base):
    """One gate decision: who asked for what, in which tenant, and the outcome."""

    __tablename__ = "authorization_audit"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=generate_cuid)
    tenant_id: Mapped[str] = mapped_column(String, nullable=False)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    resource: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    allowed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    scope: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str] = mapped_column(String, nullable=False)
    decided_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_authorization_audit_tenant_user", "tenant_id", "user_id"),
    )


@event.listens_for(AuthorizationAudit, "before_update")
def _prevent_audit_updates(
    _mapper: Mapper[Any], _connection: Connection, _target: AuthorizationAudit
) -> None:
    """Decision records are append-only; updates are forbidden."""
    raise ValueError("Authorization audit records are immutable and cannot be updated.")


@event.listens_for(AuthorizationAudit, "before_delete")
def _prevent_audit_deletes(
    _mapper: Mapper[Any], _connection: Connection, _target: AuthorizationAudit
) -> None:
    """Decision records cannot be deleted."""
    raise ValueError("Authorization audit records cannot be deleted.")
