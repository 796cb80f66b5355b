"""Business logic for computing availability."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from src.core.config import settings
from src.core.exceptions import ValidationError
from src.modules.appointments.store import AppointmentStore
from src.modules.schedule.schemas import AvailabilitySlot, DoctorAvailability, WorkHoursPublic
from src.shared.timeslots import TimeSlot, from_minutes, normalize_hhmm, overlaps, to_minutes


@dataclass(frozen=True)
class WorkHours:
    start: str
    end: str

    @classmethod
    def parse(cls, start: str, end: str) -> "WorkHours":
        try:
            opens, closes = normalize_hhmm(start), normalize_hhmm(end)
        except ValueError as exc:
            raise ValidationError("Working hours must be HH:MM times") from exc
        if opens >= closes:
            raise ValidationError("Working hours must start before they end")
        return cls(opens, closes)


def default_work_hours() -> WorkHours:
    return WorkHours.parse(settings.clinic_opens_at, settings.clinic_closes_at)


def available_slots(
    busy: Iterable[TimeSlot],
    work_hours: WorkHours,
    slot_duration_minutes: int,
) -> list[TimeSlot]:
    """Whole ``slot_duration_minutes`` slots inside ``work_hours`` that touch no busy interval.

    Slots are laid out from the opening time; a trailing period shorter than
    one slot is dropped. Advisory only: booking re-checks conflicts itself.
    """
    if slot_duration_minutes <= 0:
        raise ValidationError("Slot duration must be a positive number of minutes")
    busy_intervals = list(busy)
    opens, closes = to_minutes(work_hours.start), to_minutes(work_hours.end)

    slots: list[TimeSlot] = []
    cursor = opens
    while cursor + slot_duration_minutes <= closes:
        slot = TimeSlot(from_minutes(cursor), from_minutes(cursor + slot_duration_minutes))
        if not any(overlaps(slot.start, slot.end, interval.start, interval.end) for interval in busy_intervals):
            slots.append(slot)
        cursor += slot_duration_minutes
    return slots


async def get_doctor_availability(
    store: AppointmentStore,
    doctor_id: str,
    target_date: date,
    work_hours: WorkHours | None = None,
    slot_duration_minutes: int | None = None,
) -> DoctorAvailability:
    hours = work_hours or default_work_hours()
    duration = settings.slot_duration_minutes if slot_duration_minutes is None else slot_duration_minutes
    appointments = await store.find_active_appointments(doctor_id, target_date)
    busy = sorted(TimeSlot(appt.start_time, appt.end_time) for appt in appointments)
    free = available_slots(busy, hours, duration)
    return DoctorAvailability(
        date=target_date,
        work_hours=WorkHoursPublic(start=hours.start, end=hours.end),
        busy_slots=[AvailabilitySlot(start=slot.start, end=slot.end, duration=slot.duration_minutes) for slot in busy],
        available_slots=[AvailabilitySlot(start=slot.start, end=slot.end, duration=duration) for slot in free],
    )
