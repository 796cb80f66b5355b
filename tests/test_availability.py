import pytest

from conftest import BOOKING_DATE
from src.core.exceptions import ValidationError
from src.modules.appointments.models import Appointment
from src.modules.appointments.store import SqlAppointmentStore
from src.modules.schedule.service import WorkHours, available_slots, get_doctor_availability
from src.shared.enums import AppointmentStatus
from src.shared.timeslots import TimeSlot

CLINIC_DAY = WorkHours("09:00", "17:00")


def test_one_busy_interval_removes_one_slot():
    slots = available_slots([TimeSlot("10:00", "10:30")], CLINIC_DAY, 30)

    assert len(slots) == 15
    starts = [slot.start for slot in slots]
    assert "10:00" not in starts
    assert starts[0] == "09:00"
    assert slots[-1] == TimeSlot("16:30", "17:00")


def test_empty_calendar_yields_full_grid():
    slots = available_slots([], CLINIC_DAY, 60)
    assert [slot.start for slot in slots] == [f"{hour:02d}:00" for hour in range(9, 17)]


def test_trailing_partial_slot_is_dropped():
    slots = available_slots([], WorkHours("09:00", "10:45"), 30)
    assert slots == [TimeSlot("09:00", "09:30"), TimeSlot("09:30", "10:00"), TimeSlot("10:00", "10:30")]


def test_busy_interval_straddling_two_slots_blocks_both():
    slots = available_slots([TimeSlot("09:15", "09:45")], WorkHours("09:00", "11:00"), 30)
    assert [slot.start for slot in slots] == ["10:00", "10:30"]


def test_slot_touching_busy_interval_stays_available():
    slots = available_slots([TimeSlot("09:30", "10:00")], WorkHours("09:00", "10:30"), 30)
    assert slots == [TimeSlot("09:00", "09:30"), TimeSlot("10:00", "10:30")]


@pytest.mark.parametrize("duration", [0, -30])
def test_non_positive_slot_duration_is_rejected(duration):
    with pytest.raises(ValidationError):
        available_slots([], CLINIC_DAY, duration)


def test_work_hours_parse_validates():
    assert WorkHours.parse("8:00", "12:30") == WorkHours("08:00", "12:30")
    with pytest.raises(ValidationError):
        WorkHours.parse("12:00", "12:00")
    with pytest.raises(ValidationError):
        WorkHours.parse("noon", "17:00")


@pytest.mark.asyncio
async def test_doctor_availability_ignores_cancelled_and_other_doctors(db_session, people):
    def appointment(doctor_id, start, end, status=AppointmentStatus.SCHEDULED):
        return Appointment(
            patient_id=people.patient.patient_id,
            doctor_id=doctor_id,
            created_by_id=people.receptionist.user_id,
            appointment_date=BOOKING_DATE,
            start_time=start,
            end_time=end,
            duration_minutes=30,
            reason="Follow-up visit",
            status=status,
        )

    db_session.add_all(
        [
            appointment(people.doctor.user_id, "10:00", "10:30"),
            appointment(people.doctor.user_id, "14:00", "14:30", AppointmentStatus.CONFIRMED),
            appointment(people.doctor.user_id, "11:00", "11:30", AppointmentStatus.CANCELLED),
            appointment(people.doctor.user_id, "12:00", "12:30", AppointmentStatus.COMPLETED),
            appointment(people.other_doctor.user_id, "13:00", "13:30"),
        ]
    )
    await db_session.commit()

    result = await get_doctor_availability(
        SqlAppointmentStore(db_session),
        people.doctor.user_id,
        BOOKING_DATE,
        work_hours=CLINIC_DAY,
        slot_duration_minutes=30,
    )

    assert [(slot.start, slot.end) for slot in result.busy_slots] == [("10:00", "10:30"), ("14:00", "14:30")]
    starts = [slot.start for slot in result.available_slots]
    assert len(starts) == 14
    assert "11:00" in starts and "12:00" in starts and "13:00" in starts
    assert "10:00" not in starts and "14:00" not in starts
    assert result.work_hours.start == "09:00"
    assert result.date == BOOKING_DATE
