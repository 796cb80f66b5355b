"""Audit log ORM model."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database import Base
from src.shared.enums import AuditTargetType, enum_values
from src.shared.models import CreatedAtMixin
from src.shared.ulid import generate_ulid


class AuditLog(Base, CreatedAtMixin):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_target", "target_type", "target_id", "created_at"),
        Index("ix_audit_logs_user", "user_id", "created_at"),
        Index("ix_audit_logs_action", "action", "created_at"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    audit_id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    # Nullable: system actions have no acting user.
    user_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.user_id", ondelete="SET NULL"),
    )
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    target_type: Mapped[AuditTargetType] = mapped_column(
        Enum(
            AuditTargetType,
            values_callable=enum_values,
            validate_strings=True,
            name="audittargettype",
        ),
        nullable=False,
    )
    target_id: Mapped[str | None] = mapped_column(String(64))
    meta: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(255))
