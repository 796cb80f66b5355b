import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from conftest import BOOKING_DATE
from main import create_app
from src.core.database import get_db, get_session_factory
from src.core.exceptions import SLOT_TAKEN_MESSAGE
from src.core.security import create_access_token


def _auth(user):
    return {"Authorization": f"Bearer {create_access_token(user.user_id, user.role)}"}


@pytest_asyncio.fixture
async def client(db_session, session_factory):
    app = create_app()

    async def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def _body(people, **overrides):
    body = {
        "patient_id": people.patient.patient_id,
        "doctor_id": people.doctor.user_id,
        "appointment_date": BOOKING_DATE.isoformat(),
        "start_time": "10:00",
        "end_time": "10:30",
        "reason": "Annual physical",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_create_appointment_returns_envelope(client, people):
    resp = await client.post("/api/v1/appointments", json=_body(people), headers=_auth(people.receptionist))

    assert resp.status_code == 201
    payload = resp.json()
    assert payload["success"] is True
    assert payload["message"] == "Appointment created successfully"
    data = payload["data"]
    assert data["id"]
    assert data["status"] == "scheduled"
    assert data["priority"] == "routine"
    assert data["duration_minutes"] == 30
    assert data["appointment_date"] == "2030-05-20"


@pytest.mark.asyncio
async def test_double_booking_returns_409(client, people):
    headers = _auth(people.receptionist)
    first = await client.post("/api/v1/appointments", json=_body(people), headers=headers)
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/appointments",
        json=_body(people, start_time="10:15", end_time="10:45"),
        headers=headers,
    )

    assert second.status_code == 409
    assert second.json() == {"success": False, "message": SLOT_TAKEN_MESSAGE}


@pytest.mark.asyncio
async def test_invalid_duration_returns_400(client, people):
    resp = await client.post(
        "/api/v1/appointments",
        json=_body(people, end_time="10:10"),
        headers=_auth(people.receptionist),
    )

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "between 15 and 480" in resp.json()["message"]


@pytest.mark.asyncio
async def test_missing_fields_fail_schema_validation(client, people):
    body = _body(people)
    del body["reason"]
    resp = await client.post("/api/v1/appointments", json=body, headers=_auth(people.receptionist))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_requests_need_a_valid_token(client, people):
    assert (await client.get("/api/v1/appointments")).status_code == 401
    bad = await client.get("/api/v1/appointments", headers={"Authorization": "Bearer nonsense"})
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_cancel_then_rebook_same_slot(client, people):
    headers = _auth(people.nurse)
    created = await client.post("/api/v1/appointments", json=_body(people), headers=headers)
    appointment_id = created.json()["data"]["id"]

    cancelled = await client.delete(f"/api/v1/appointments/{appointment_id}", headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "cancelled"

    again = await client.post("/api/v1/appointments", json=_body(people), headers=headers)
    assert again.status_code == 201


@pytest.mark.asyncio
async def test_reschedule_conflict_returns_409(client, people):
    headers = _auth(people.receptionist)
    first = await client.post("/api/v1/appointments", json=_body(people), headers=headers)
    await client.post("/api/v1/appointments", json=_body(people, start_time="11:00", end_time="11:30"), headers=headers)

    resp = await client.put(
        f"/api/v1/appointments/{first.json()['data']['id']}",
        json={"start_time": "11:00", "end_time": "11:30"},
        headers=headers,
    )

    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_availability_endpoint_lists_free_slots(client, people):
    headers = _auth(people.receptionist)
    await client.post("/api/v1/appointments", json=_body(people), headers=headers)

    resp = await client.get(
        f"/api/v1/schedule/availability/{people.doctor.user_id}",
        params={"date": "2030-05-20", "opens_at": "09:00", "closes_at": "17:00", "slot_minutes": 30},
        headers=headers,
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["date"] == "2030-05-20"
    assert data["busy_slots"] == [{"start": "10:00", "end": "10:30", "duration": 30}]
    assert len(data["available_slots"]) == 15
    assert {"start": "10:00", "end": "10:30", "duration": 30} not in data["available_slots"]


@pytest.mark.asyncio
async def test_doctor_listing_only_shows_own_appointments(client, people):
    desk = _auth(people.receptionist)
    await client.post("/api/v1/appointments", json=_body(people), headers=desk)
    await client.post("/api/v1/appointments", json=_body(people, doctor_id=people.other_doctor.user_id), headers=desk)

    resp = await client.get("/api/v1/appointments", headers=_auth(people.doctor))

    assert resp.status_code == 200
    assert [item["doctor_id"] for item in resp.json()["data"]] == [people.doctor.user_id]


@pytest.mark.asyncio
async def test_admin_can_read_the_audit_trail(client, people):
    created = await client.post(
        "/api/v1/appointments",
        json=_body(people),
        headers={**_auth(people.receptionist), "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )
    appointment_id = created.json()["data"]["id"]

    forbidden = await client.get("/api/v1/admin/audits", headers=_auth(people.receptionist))
    assert forbidden.status_code == 403

    resp = await client.get(
        "/api/v1/admin/audits",
        params={"target_type": "appointment", "target_id": appointment_id},
        headers=_auth(people.admin),
    )

    assert resp.status_code == 200
    entries = resp.json()["data"]
    assert len(entries) == 1
    assert entries[0]["action"] == "APPOINTMENT_CREATE"
    assert entries[0]["user_id"] == people.receptionist.user_id
    assert entries[0]["ip_address"] == "203.0.113.7"
    assert entries[0]["meta"]["after"]["start_time"] == "10:00"


@pytest.mark.asyncio
async def test_me_returns_the_token_owner(client, people):
    resp = await client.get("/api/v1/users/me", headers=_auth(people.doctor))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == people.doctor.user_id
    assert data["role"] == "doctor"
    assert data["full_name"] == "Greg House"
