"""Initial schema for the medical records booking backend.

Revision ID: 4c1e9a7d2b10
Revises:
Create Date: 2026-10-17 10:12:41.508211

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4c1e9a7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("admin", "doctor", "nurse", "receptionist", name="userrole")
appointment_status = sa.Enum(
    "scheduled",
    "confirmed",
    "in-progress",
    "completed",
    "cancelled",
    "no-show",
    name="appointmentstatus",
)
appointment_priority = sa.Enum("routine", "urgent", "emergency", name="appointmentpriority")
audit_target_type = sa.Enum("patient", "record", "appointment", "auth", "system", name="audittargettype")


def _timestamps(with_updated_at: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if with_updated_at:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(length=26), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default="receptionist"),
        sa.Column("specialization", sa.String(length=120)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "patients",
        sa.Column("patient_id", sa.String(length=26), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("age", sa.Integer()),
        sa.Column("gender", sa.String(length=20)),
        *_timestamps(),
    )

    op.create_table(
        "appointments",
        sa.Column("appointment_id", sa.String(length=26), primary_key=True),
        sa.Column(
            "patient_id",
            sa.String(length=26),
            sa.ForeignKey("patients.patient_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("doctor_id", sa.String(length=26), sa.ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "created_by_id",
            sa.String(length=26),
            sa.ForeignKey("users.user_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False),
        sa.Column("status", appointment_status, nullable=False, server_default="scheduled"),
        sa.Column("priority", appointment_priority, nullable=False, server_default="routine"),
        sa.Column("notes", sa.Text()),
        sa.Column("follow_up_for_record_id", sa.String(length=26)),
        *_timestamps(),
        sa.CheckConstraint("end_time > start_time", name="ck_appointments_time_order"),
        sa.CheckConstraint("duration_minutes BETWEEN 15 AND 480", name="ck_appointments_duration_bounds"),
    )
    op.create_index("ix_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"])
    op.create_index("ix_appointments_patient_date", "appointments", ["patient_id", "appointment_date"])
    op.create_index("ix_appointments_status_date", "appointments", ["status", "appointment_date"])

    op.create_table(
        "audit_logs",
        sa.Column("audit_id", sa.String(length=26), primary_key=True),
        sa.Column("user_id", sa.String(length=26), sa.ForeignKey("users.user_id", ondelete="SET NULL")),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("target_type", audit_target_type, nullable=False),
        sa.Column("target_id", sa.String(length=64)),
        sa.Column("meta", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(length=64)),
        sa.Column("user_agent", sa.String(length=255)),
        *_timestamps(with_updated_at=False),
    )
    op.create_index("ix_audit_logs_target", "audit_logs", ["target_type", "target_id", "created_at"])
    op.create_index("ix_audit_logs_user", "audit_logs", ["user_id", "created_at"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action", "created_at"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("appointments")
    op.drop_table("patients")
    op.drop_table("users")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum in (audit_target_type, appointment_priority, appointment_status, user_role):
            enum.drop(bind, checkfirst=True)
