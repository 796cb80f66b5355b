"""Appointments schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.modules.appointments.models import NOTES_MAX_LENGTH
from src.shared.enums import AppointmentPriority, AppointmentStatus, UserRole


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment_id: str = Field(serialization_alias="id")
    patient_id: str
    doctor_id: str
    created_by_id: str
    appointment_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    reason: str
    status: AppointmentStatus
    priority: AppointmentPriority
    notes: str | None = None
    follow_up_for_record_id: str | None = None
    created_at: datetime
    updated_at: datetime


class AppointmentCreate(BaseModel):
    patient_id: str
    doctor_id: str
    appointment_date: date
    start_time: str
    end_time: str
    reason: str
    priority: AppointmentPriority = AppointmentPriority.ROUTINE
    notes: str | None = Field(None, max_length=NOTES_MAX_LENGTH)
    follow_up_for_record_id: str | None = None

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, value: str) -> str:
        return value.strip()


class AppointmentUpdate(BaseModel):
    appointment_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    reason: str | None = None
    priority: AppointmentPriority | None = None
    status: AppointmentStatus | None = None
    notes: str | None = Field(None, max_length=NOTES_MAX_LENGTH)


class DoctorPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(serialization_alias="id")
    first_name: str
    last_name: str
    specialization: str | None = None
    phone: str | None = None
    role: UserRole
