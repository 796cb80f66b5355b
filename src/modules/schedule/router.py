"""Schedule routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from src.core.config import settings
from src.core.deps import require_staff
from src.modules.appointments.router import get_service
from src.modules.appointments.schemas import AppointmentPublic
from src.modules.appointments.service import AppointmentService
from src.modules.schedule.schemas import DoctorAvailability
from src.modules.schedule.service import WorkHours
from src.modules.users.models import User
from src.shared.schemas import ResponseEnvelope, envelope

router = APIRouter(prefix="/api/v1/schedule", tags=["schedule"])


@router.get("/availability/{doctor_id}", response_model=ResponseEnvelope[DoctorAvailability])
async def availability(
    doctor_id: str,
    date_value: date = Query(..., alias="date"),
    slot_minutes: int | None = Query(None, gt=0, le=480),
    opens_at: str | None = Query(None),
    closes_at: str | None = Query(None),
    _: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    work_hours = None
    if opens_at or closes_at:
        work_hours = WorkHours.parse(opens_at or settings.clinic_opens_at, closes_at or settings.clinic_closes_at)
    result = await service.availability(
        doctor_id,
        date_value,
        work_hours=work_hours,
        slot_duration_minutes=slot_minutes,
    )
    return envelope(result)


@router.get("/{doctor_id}", response_model=ResponseEnvelope[list[AppointmentPublic]])
async def doctor_schedule(
    doctor_id: str,
    date_value: date | None = Query(None, alias="date"),
    _: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
):
    target = date_value or date.today()
    return envelope(await service.doctor_schedule(doctor_id, target))
