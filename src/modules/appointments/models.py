"""Appointment ORM model."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database import Base
from src.shared.enums import AppointmentPriority, AppointmentStatus, enum_values
from src.shared.models import TimestampMixin
from src.shared.ulid import generate_ulid

if TYPE_CHECKING:  # pragma: no cover
    from src.modules.users.models import Patient, User

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480
REASON_MIN_LENGTH = 5
REASON_MAX_LENGTH = 500
NOTES_MAX_LENGTH = 1000


class Appointment(Base, TimestampMixin):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_doctor_date", "doctor_id", "appointment_date"),
        Index("ix_appointments_patient_date", "patient_id", "appointment_date"),
        Index("ix_appointments_status_date", "status", "appointment_date"),
        CheckConstraint("end_time > start_time", name="ck_appointments_time_order"),
        CheckConstraint(
            f"duration_minutes BETWEEN {MIN_DURATION_MINUTES} AND {MAX_DURATION_MINUTES}",
            name="ck_appointments_duration_bounds",
        ),
    )

    appointment_id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    patient_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("patients.patient_id", ondelete="RESTRICT"),
        nullable=False,
    )
    doctor_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    created_by_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Zero-padded HH:MM; string order equals time order.
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(REASON_MAX_LENGTH), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(
            AppointmentStatus,
            values_callable=enum_values,
            validate_strings=True,
            name="appointmentstatus",
        ),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    priority: Mapped[AppointmentPriority] = mapped_column(
        Enum(
            AppointmentPriority,
            values_callable=enum_values,
            validate_strings=True,
            name="appointmentpriority",
        ),
        default=AppointmentPriority.ROUTINE,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    follow_up_for_record_id: Mapped[str | None] = mapped_column(String(26))

    patient: Mapped[Patient] = relationship(back_populates="appointments")
    doctor: Mapped[User] = relationship(
        back_populates="doctor_appointments",
        foreign_keys=[doctor_id],
    )
    created_by: Mapped[User] = relationship(foreign_keys=[created_by_id])

    def snapshot(self) -> dict[str, object]:
        """Plain-JSON view of the row, used for audit before/after images."""
        return {
            "id": self.appointment_id,
            "patient_id": self.patient_id,
            "doctor_id": self.doctor_id,
            "created_by_id": self.created_by_id,
            "appointment_date": self.appointment_date.isoformat() if self.appointment_date else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_minutes": self.duration_minutes,
            "reason": self.reason,
            "status": str(self.status) if self.status else None,
            "priority": str(self.priority) if self.priority else None,
            "notes": self.notes,
            "follow_up_for_record_id": self.follow_up_for_record_id,
        }
