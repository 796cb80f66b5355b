"""Conflict detection and the booking transaction.

Only active-family appointments (scheduled, confirmed, in-progress) occupy a
doctor's calendar. For one doctor and date they must be pairwise
non-overlapping under the half-open test ``s1 < e2 and e1 > s2``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any, Protocol

from src.core.exceptions import ConflictError, StoreError, ValidationError
from src.modules.appointments.models import (
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    REASON_MAX_LENGTH,
    REASON_MIN_LENGTH,
    Appointment,
)
from src.modules.appointments.store import AppointmentStore
from src.shared.timeslots import normalize_hhmm, overlaps, to_minutes

logger = logging.getLogger(__name__)


class SlotCandidate(Protocol):
    doctor_id: str
    appointment_date: date
    start_time: str
    end_time: str


@dataclass(frozen=True)
class RequestedSlot:
    doctor_id: str
    appointment_date: date
    start_time: str
    end_time: str


@dataclass(frozen=True)
class ValidatedTimes:
    start_time: str
    end_time: str
    duration_minutes: int


def validate_times(start_time: str, end_time: str) -> ValidatedTimes:
    """Normalize ``HH:MM`` inputs and enforce ordering and duration bounds."""
    try:
        start = normalize_hhmm(start_time)
        end = normalize_hhmm(end_time)
    except ValueError as exc:
        raise ValidationError("Valid start and end times (HH:MM) are required") from exc
    duration = to_minutes(end) - to_minutes(start)
    if duration <= 0:
        raise ValidationError("End time must be after start time")
    if not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
        raise ValidationError(
            f"Appointment duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
        )
    return ValidatedTimes(start_time=start, end_time=end, duration_minutes=duration)


def validate_reason(reason: str) -> str:
    cleaned = reason.strip()
    if not REASON_MIN_LENGTH <= len(cleaned) <= REASON_MAX_LENGTH:
        raise ValidationError(f"Reason must be {REASON_MIN_LENGTH}-{REASON_MAX_LENGTH} characters")
    return cleaned


class ConflictChecker:
    """Read-only overlap check against the store.

    Fails closed: when the store cannot answer, the candidate is reported as
    conflicting. A spurious conflict costs the caller a retry; a missed one
    double-books a doctor.
    """

    def __init__(self, store: AppointmentStore):
        self.store = store

    async def has_conflict(self, candidate: SlotCandidate, exclude_id: str | None = None) -> bool:
        try:
            existing = await self.store.find_active_appointments(candidate.doctor_id, candidate.appointment_date)
        except StoreError:
            logger.warning(
                "Conflict check for doctor %s on %s failed; treating slot as taken",
                candidate.doctor_id,
                candidate.appointment_date,
                exc_info=True,
            )
            return True
        return any(
            appointment.appointment_id != exclude_id
            and overlaps(appointment.start_time, appointment.end_time, candidate.start_time, candidate.end_time)
            for appointment in existing
        )


class BookingStatus(StrEnum):
    BOOKED = "booked"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class BookingResult:
    status: BookingStatus
    record: Appointment | None = None

    @property
    def booked(self) -> bool:
        return self.status == BookingStatus.BOOKED


async def book_appointment(store: AppointmentStore, candidate: Appointment) -> BookingResult:
    """Persist a new active appointment unless its slot is taken.

    ``StoreError`` from the write step propagates: the caller must treat it
    as "not booked".
    """
    if await ConflictChecker(store).has_conflict(candidate):
        return BookingResult(BookingStatus.CONFLICT)
    try:
        record = await store.insert_if_no_conflict(candidate)
    except ConflictError:
        return BookingResult(BookingStatus.CONFLICT)
    return BookingResult(BookingStatus.BOOKED, record)


async def rebook_appointment(
    store: AppointmentStore,
    current: Appointment,
    changes: Mapping[str, Any],
) -> BookingResult:
    """Move (or reactivate) ``current``; its own slot never counts against it."""
    target = RequestedSlot(
        doctor_id=current.doctor_id,
        appointment_date=changes.get("appointment_date", current.appointment_date),
        start_time=changes.get("start_time", current.start_time),
        end_time=changes.get("end_time", current.end_time),
    )
    if await ConflictChecker(store).has_conflict(target, exclude_id=current.appointment_id):
        return BookingResult(BookingStatus.CONFLICT)
    try:
        record = await store.update_if_no_conflict(current.appointment_id, changes)
    except ConflictError:
        return BookingResult(BookingStatus.CONFLICT)
    return BookingResult(BookingStatus.BOOKED, record)
