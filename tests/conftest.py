from datetime import date
from pathlib import Path
from types import SimpleNamespace
import os
import sys

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from src.core.database import Base, build_session_factory  # noqa: E402
from src.modules.appointments.schemas import AppointmentCreate  # noqa: E402
import src.modules.appointments.models  # noqa: E402,F401
import src.modules.audit.models  # noqa: E402,F401
from src.modules.users.models import Patient, User  # noqa: E402
from src.shared.enums import UserRole  # noqa: E402
from src.shared.ulid import generate_ulid  # noqa: E402

BOOKING_DATE = date(2030, 5, 20)


class RecordingAuditSink:
    def __init__(self):
        self.events = []

    async def record(self, event):
        self.events.append(event)


@pytest_asyncio.fixture
async def engine(tmp_path):
    # A file database: concurrent sessions must see each other's commits.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


def _user(email, first_name, last_name, role, **extra):
    return User(
        user_id=generate_ulid(),
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
        **extra,
    )


@pytest_asyncio.fixture
async def people(session_factory):
    staff = SimpleNamespace(
        admin=_user("admin@clinic.test", "Ada", "Admin", UserRole.ADMIN),
        doctor=_user("house@clinic.test", "Greg", "House", UserRole.DOCTOR, specialization="Diagnostics"),
        other_doctor=_user("wilson@clinic.test", "James", "Wilson", UserRole.DOCTOR, specialization="Oncology"),
        nurse=_user("nurse@clinic.test", "Carla", "Espinosa", UserRole.NURSE),
        receptionist=_user("desk@clinic.test", "Pam", "Front", UserRole.RECEPTIONIST),
        patient=Patient(patient_id=generate_ulid(), first_name="John", last_name="Doe", age=42, gender="male"),
    )
    async with session_factory() as session:
        session.add_all(list(vars(staff).values()))
        await session.commit()
    return staff


@pytest.fixture
def make_payload(people):
    def factory(**overrides):
        data = {
            "patient_id": people.patient.patient_id,
            "doctor_id": people.doctor.user_id,
            "appointment_date": BOOKING_DATE,
            "start_time": "10:00",
            "end_time": "10:30",
            "reason": "Routine check-up",
        }
        data.update(overrides)
        return AppointmentCreate(**data)

    return factory
