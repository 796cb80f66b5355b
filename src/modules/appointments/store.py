"""Appointment persistence with conditional (conflict-guarded) writes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, StoreError
from src.modules.appointments.locks import KeyedLock, booking_locks
from src.modules.appointments.models import Appointment
from src.shared.enums import ACTIVE_STATUSES, AppointmentStatus

logger = logging.getLogger(__name__)

SLOT_FIELDS = frozenset({"appointment_date", "start_time", "end_time"})
STORE_FAILURES = (SQLAlchemyError, OSError, TimeoutError)


class AppointmentStore(Protocol):
    async def find_active_appointments(self, doctor_id: str, appointment_date: date) -> list[Appointment]: ...

    async def insert_if_no_conflict(self, candidate: Appointment) -> Appointment: ...

    async def update_if_no_conflict(self, appointment_id: str, changes: Mapping[str, Any]) -> Appointment: ...


class SqlAppointmentStore:
    """Store over one request's ``AsyncSession``.

    Writes that occupy calendar time hold the ``(doctor_id, appointment_date)``
    lock while they re-run the overlap query, write and commit, so two
    callers can never both pass the check for overlapping slots.
    """

    def __init__(self, db: AsyncSession, locks: KeyedLock = booking_locks):
        self.db = db
        self.locks = locks

    async def get(self, appointment_id: str) -> Appointment | None:
        try:
            return await self.db.get(Appointment, appointment_id)
        except STORE_FAILURES as exc:
            raise StoreError() from exc

    async def find_active_appointments(self, doctor_id: str, appointment_date: date) -> list[Appointment]:
        stmt = (
            select(Appointment)
            .where(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == appointment_date,
                Appointment.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Appointment.start_time)
        )
        try:
            result = await self.db.execute(stmt)
        except STORE_FAILURES as exc:
            raise StoreError() from exc
        return list(result.scalars().all())

    async def insert_if_no_conflict(self, candidate: Appointment) -> Appointment:
        async with self.locks.hold(_lock_key(candidate.doctor_id, candidate.appointment_date)):
            try:
                await self._end_read_transaction()
                overlapping = await self._first_overlap(
                    candidate.doctor_id,
                    candidate.appointment_date,
                    candidate.start_time,
                    candidate.end_time,
                )
                if overlapping is not None:
                    raise ConflictError()
                self.db.add(candidate)
                await self.db.commit()
                await self.db.refresh(candidate)
            except STORE_FAILURES as exc:
                await self._rollback_quietly()
                raise StoreError() from exc
        return candidate

    async def update_if_no_conflict(self, appointment_id: str, changes: Mapping[str, Any]) -> Appointment:
        appointment = await self.get(appointment_id)
        if appointment is None:
            raise LookupError(appointment_id)
        target_date = changes.get("appointment_date", appointment.appointment_date)
        async with self.locks.hold(_lock_key(appointment.doctor_id, target_date)):
            try:
                await self._end_read_transaction()
                overlapping = await self._first_overlap(
                    appointment.doctor_id,
                    target_date,
                    changes.get("start_time", appointment.start_time),
                    changes.get("end_time", appointment.end_time),
                    exclude_id=appointment.appointment_id,
                )
                if overlapping is not None:
                    raise ConflictError()
                for key, value in changes.items():
                    setattr(appointment, key, value)
                await self.db.commit()
                await self.db.refresh(appointment)
            except STORE_FAILURES as exc:
                await self._rollback_quietly()
                raise StoreError() from exc
        return appointment

    async def update_details(self, appointment: Appointment, changes: Mapping[str, Any]) -> Appointment:
        """Write changes that cannot grow a doctor's occupied time.

        Moving the slot or bringing a non-active appointment back into the
        active family must go through ``update_if_no_conflict``.
        """
        new_status = changes.get("status", appointment.status)
        reactivates = new_status in ACTIVE_STATUSES and appointment.status not in ACTIVE_STATUSES
        moves_active_slot = new_status in ACTIVE_STATUSES and any(
            key in changes and changes[key] != getattr(appointment, key) for key in SLOT_FIELDS
        )
        if reactivates or moves_active_slot:
            raise ValueError("changes occupy calendar time; use update_if_no_conflict")
        try:
            for key, value in changes.items():
                setattr(appointment, key, value)
            await self.db.commit()
            await self.db.refresh(appointment)
        except STORE_FAILURES as exc:
            await self._rollback_quietly()
            raise StoreError() from exc
        return appointment

    async def cancel(self, appointment: Appointment) -> Appointment:
        return await self.update_details(appointment, {"status": AppointmentStatus.CANCELLED})

    async def _first_overlap(
        self,
        doctor_id: str,
        appointment_date: date,
        start_time: str,
        end_time: str,
        exclude_id: str | None = None,
    ) -> str | None:
        stmt = select(Appointment.appointment_id).where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_time < end_time,
            Appointment.end_time > start_time,
        )
        if exclude_id:
            stmt = stmt.where(Appointment.appointment_id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def _end_read_transaction(self) -> None:
        # The re-check must see rows committed while we waited for the lock; a
        # transaction opened by earlier reads may still hold an older snapshot.
        if self.db.in_transaction():
            await self.db.commit()

    async def _rollback_quietly(self) -> None:
        try:
            await self.db.rollback()
        except STORE_FAILURES:
            logger.warning("Rollback after failed appointment write also failed", exc_info=True)


def _lock_key(doctor_id: str, appointment_date: date) -> tuple[str, date]:
    return doctor_id, appointment_date
