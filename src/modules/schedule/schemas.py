"""Schedule schemas."""

import datetime as dt

from pydantic import BaseModel


class AvailabilitySlot(BaseModel):
    start: str
    end: str
    duration: int


class WorkHoursPublic(BaseModel):
    start: str
    end: str


class DoctorAvailability(BaseModel):
    date: dt.date
    work_hours: WorkHoursPublic
    busy_slots: list[AvailabilitySlot]
    available_slots: list[AvailabilitySlot]
