"""Appointments API routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import require_staff
from src.modules.appointments.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentUpdate,
    DoctorPublic,
)
from src.modules.appointments.service import AppointmentQuery, AppointmentService
from src.modules.audit.router import get_audit_sink
from src.modules.audit.service import AuditContext, AuditSink
from src.modules.users.models import User
from src.shared.enums import AppointmentStatus
from src.shared.schemas import ResponseEnvelope, envelope

router = APIRouter(prefix="/api/v1/appointments", tags=["appointments"])


def get_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
) -> AppointmentService:
    return AppointmentService(db, audit)


@router.get("", response_model=ResponseEnvelope[list[AppointmentPublic]])
async def list_appointments(
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    date_value: date | None = Query(None, alias="date"),
    doctor_id: str | None = Query(None),
    patient_id: str | None = Query(None),
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    query = AppointmentQuery(
        status=status_filter,
        appointment_date=date_value,
        doctor_id=doctor_id,
        patient_id=patient_id,
    )
    return envelope(await service.list_appointments(query, current_user))


# Fixed paths must be declared before /{appointment_id}.
@router.get("/doctors", response_model=ResponseEnvelope[list[DoctorPublic]])
async def list_doctors(
    _: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    return envelope(await service.list_doctors())


@router.get("/patient/{patient_id}", response_model=ResponseEnvelope[list[AppointmentPublic]])
async def patient_history(
    patient_id: str,
    _: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    return envelope(await service.list_for_patient(patient_id))


@router.get("/{appointment_id}", response_model=ResponseEnvelope[AppointmentPublic])
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    return envelope(await service.get(appointment_id, current_user))


@router.post("", response_model=ResponseEnvelope[AppointmentPublic], status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    request: Request,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    context = AuditContext.from_request(request, current_user.user_id)
    appointment = await service.book(payload, current_user, context)
    return envelope(appointment, "Appointment created successfully")


@router.put("/{appointment_id}", response_model=ResponseEnvelope[AppointmentPublic])
async def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    request: Request,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    context = AuditContext.from_request(request, current_user.user_id)
    appointment = await service.update(appointment_id, payload, current_user, context)
    return envelope(appointment, "Appointment updated successfully")


@router.delete("/{appointment_id}", response_model=ResponseEnvelope[AppointmentPublic])
async def cancel_appointment(
    appointment_id: str,
    request: Request,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    context = AuditContext.from_request(request, current_user.user_id)
    appointment = await service.cancel(appointment_id, current_user, context)
    return envelope(appointment, "Appointment cancelled successfully")
