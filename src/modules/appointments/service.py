"""Appointment service layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, ValidationError
from src.modules.appointments.booking import (
    book_appointment,
    rebook_appointment,
    validate_reason,
    validate_times,
)
from src.modules.appointments.models import Appointment
from src.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate
from src.modules.appointments.store import SLOT_FIELDS, SqlAppointmentStore
from src.modules.audit.service import AuditContext, AuditEvent, AuditSink, build_meta
from src.modules.schedule.schemas import DoctorAvailability
from src.modules.schedule.service import WorkHours, get_doctor_availability
from src.modules.users.models import Patient, User
from src.shared.enums import ACTIVE_STATUSES, AuditAction, AuditTargetType, UserRole
from src.shared.ulid import is_ulid

logger = logging.getLogger(__name__)

# Roles allowed to manage any doctor's calendar; doctors only manage their own.
CALENDAR_MANAGER_ROLES = frozenset({UserRole.ADMIN, UserRole.NURSE, UserRole.RECEPTIONIST})


@dataclass
class AppointmentQuery:
    status: str | None = None
    appointment_date: date | None = None
    doctor_id: str | None = None
    patient_id: str | None = None


class AppointmentService:
    def __init__(self, db: AsyncSession, audit: AuditSink, store: SqlAppointmentStore | None = None):
        self.db = db
        self.audit = audit
        self.store = store or SqlAppointmentStore(db)

    async def book(
        self,
        payload: AppointmentCreate,
        user: User,
        context: AuditContext | None = None,
    ) -> Appointment:
        times = validate_times(payload.start_time, payload.end_time)
        reason = validate_reason(payload.reason)

        doctor = await self._get_doctor(payload.doctor_id)
        self._ensure_can_manage(user, doctor.user_id)
        patient = await self._get_patient(payload.patient_id)

        candidate = Appointment(
            patient_id=patient.patient_id,
            doctor_id=doctor.user_id,
            created_by_id=user.user_id,
            appointment_date=payload.appointment_date,
            start_time=times.start_time,
            end_time=times.end_time,
            duration_minutes=times.duration_minutes,
            reason=reason,
            priority=payload.priority,
            notes=payload.notes,
            follow_up_for_record_id=payload.follow_up_for_record_id,
        )
        result = await book_appointment(self.store, candidate)
        if not result.booked:
            logger.info(
                "Rejected booking for doctor %s on %s %s-%s: slot taken",
                doctor.user_id,
                payload.appointment_date,
                times.start_time,
                times.end_time,
            )
            raise ConflictError()

        appointment = result.record
        logger.info("Booked appointment %s for doctor %s", appointment.appointment_id, appointment.doctor_id)
        await self._emit(
            AuditAction.APPOINTMENT_CREATE,
            appointment,
            context or AuditContext(user_id=user.user_id),
            after=appointment.snapshot(),
        )
        return appointment

    async def update(
        self,
        appointment_id: str,
        payload: AppointmentUpdate,
        user: User,
        context: AuditContext | None = None,
    ) -> Appointment:
        appointment = await self._get_by_id(appointment_id)
        self._ensure_can_manage(user, appointment.doctor_id)
        changes = self._collect_changes(appointment, payload.model_dump(exclude_unset=True))
        if not changes:
            return appointment

        before = appointment.snapshot()
        new_status = changes.get("status", appointment.status)
        moves_slot = any(key in changes and changes[key] != getattr(appointment, key) for key in SLOT_FIELDS)
        reactivates = appointment.status not in ACTIVE_STATUSES
        if new_status in ACTIVE_STATUSES and (moves_slot or reactivates):
            result = await rebook_appointment(self.store, appointment, changes)
            if not result.booked:
                logger.info("Rejected reschedule of appointment %s: slot taken", appointment_id)
                raise ConflictError()
            updated = result.record
        else:
            updated = await self.store.update_details(appointment, changes)

        logger.info("Updated appointment %s", updated.appointment_id)
        await self._emit(
            AuditAction.APPOINTMENT_UPDATE,
            updated,
            context or AuditContext(user_id=user.user_id),
            before=before,
            after=updated.snapshot(),
        )
        return updated

    async def cancel(
        self,
        appointment_id: str,
        user: User,
        context: AuditContext | None = None,
    ) -> Appointment:
        appointment = await self._get_by_id(appointment_id)
        self._ensure_can_manage(user, appointment.doctor_id)
        before = appointment.snapshot()
        cancelled = await self.store.cancel(appointment)
        logger.info("Cancelled appointment %s", cancelled.appointment_id)
        await self._emit(
            AuditAction.APPOINTMENT_CANCEL,
            cancelled,
            context or AuditContext(user_id=user.user_id),
            before=before,
            after=cancelled.snapshot(),
        )
        return cancelled

    async def get(self, appointment_id: str, user: User) -> Appointment:
        appointment = await self._get_by_id(appointment_id)
        if user.role == UserRole.DOCTOR and appointment.doctor_id != user.user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return appointment

    async def list_appointments(self, query: AppointmentQuery, user: User) -> list[Appointment]:
        stmt = select(Appointment)
        if query.status:
            stmt = stmt.where(Appointment.status == query.status)
        if query.appointment_date:
            stmt = stmt.where(Appointment.appointment_date == query.appointment_date)
        if query.doctor_id:
            stmt = stmt.where(Appointment.doctor_id == query.doctor_id)
        if query.patient_id:
            stmt = stmt.where(Appointment.patient_id == query.patient_id)

        if user.role == UserRole.DOCTOR:
            stmt = stmt.where(Appointment.doctor_id == user.user_id)
        elif user.role == UserRole.RECEPTIONIST:
            stmt = stmt.where(Appointment.status.in_(ACTIVE_STATUSES))

        stmt = stmt.order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_patient(self, patient_id: str) -> list[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def doctor_schedule(self, doctor_id: str, target_date: date) -> list[Appointment]:
        return await self.store.find_active_appointments(doctor_id, target_date)

    async def availability(
        self,
        doctor_id: str,
        target_date: date,
        work_hours: WorkHours | None = None,
        slot_duration_minutes: int | None = None,
    ) -> DoctorAvailability:
        return await get_doctor_availability(
            self.store,
            doctor_id,
            target_date,
            work_hours=work_hours,
            slot_duration_minutes=slot_duration_minutes,
        )

    async def list_doctors(self) -> list[User]:
        stmt = (
            select(User)
            .where(User.role == UserRole.DOCTOR, User.is_active.is_(True))
            .order_by(User.first_name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def _collect_changes(self, appointment: Appointment, update_data: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if update_data.get("start_time") is not None or update_data.get("end_time") is not None:
            times = validate_times(
                update_data.get("start_time") or appointment.start_time,
                update_data.get("end_time") or appointment.end_time,
            )
            changes["start_time"] = times.start_time
            changes["end_time"] = times.end_time
            changes["duration_minutes"] = times.duration_minutes
        if update_data.get("appointment_date") is not None:
            changes["appointment_date"] = update_data["appointment_date"]
        if update_data.get("reason") is not None:
            changes["reason"] = validate_reason(update_data["reason"])
        if update_data.get("priority") is not None:
            changes["priority"] = update_data["priority"]
        if update_data.get("status") is not None:
            changes["status"] = update_data["status"]
        if "notes" in update_data:
            changes["notes"] = update_data["notes"]
        return changes

    def _ensure_can_manage(self, user: User, doctor_id: str) -> None:
        if user.role in CALENDAR_MANAGER_ROLES:
            return
        if user.role == UserRole.DOCTOR and user.user_id == doctor_id:
            return
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    async def _get_doctor(self, doctor_id: str) -> User:
        doctor = await self.db.get(User, doctor_id)
        if doctor is None or doctor.role != UserRole.DOCTOR or not doctor.is_active:
            raise ValidationError("Invalid doctor selected")
        return doctor

    async def _get_patient(self, patient_id: str) -> Patient:
        patient = await self.db.get(Patient, patient_id)
        if patient is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
        return patient

    async def _get_by_id(self, appointment_id: str) -> Appointment:
        appointment = await self.store.get(appointment_id) if is_ulid(appointment_id) else None
        if appointment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
        return appointment

    async def _emit(
        self,
        action: AuditAction,
        appointment: Appointment,
        context: AuditContext,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> None:
        event = AuditEvent(
            action=action,
            target_type=AuditTargetType.APPOINTMENT,
            target_id=appointment.appointment_id,
            context=context,
            meta=build_meta(
                patient_id=appointment.patient_id,
                doctor_id=appointment.doctor_id,
                before=before,
                after=after,
            ),
        )
        try:
            await self.audit.record(event)
        except Exception:  # noqa: BLE001 - the audited change is already committed
            logger.exception("Audit logging failed for %s on %s", action, appointment.appointment_id)
