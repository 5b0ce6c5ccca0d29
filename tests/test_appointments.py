"""End-to-end tests for appointment endpoints."""

from datetime import UTC, date, datetime
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import TransientStoreError
from app.services.appointment_store import AppointmentStore
from conftest import TODAY, TOMORROW, YESTERDAY, auth_headers_for, booking_payload

BASE = "/api/v1/appointments"


@pytest.mark.asyncio
async def test_book_then_confirm(client: AsyncClient, patient, doctor):
    """Test a patient booking that the doctor confirms."""
    response = await client.post(
        f"{BASE}/", json=booking_payload(doctor["id"]), headers=auth_headers_for(patient)
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["doctor_name"] == "Dr. X"
    assert data["patient_id"] == str(patient["id"])
    assert data["appointment_date"] == TOMORROW.isoformat()
    assert data["appointment_time"] == "10:00"

    response = await client.patch(
        f"{BASE}/{data['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers_for(doctor),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["confirmed_at"] is not None


@pytest.mark.asyncio
async def test_emergency_booking_confirmed_immediately(client: AsyncClient, patient, doctor):
    response = await client.post(
        f"{BASE}/",
        json=booking_payload(doctor["id"], appointment_time="09:00", is_emergency=True),
        headers=auth_headers_for(patient),
    )

    assert response.status_code == 201
    assert response.json()["status"] == "confirmed"
    assert response.json()["is_emergency"] is True


@pytest.mark.asyncio
async def test_double_booking_rejected(client: AsyncClient, patient, other_patient, doctor):
    first = await client.post(
        f"{BASE}/", json=booking_payload(doctor["id"]), headers=auth_headers_for(patient)
    )
    second = await client.post(
        f"{BASE}/", json=booking_payload(doctor["id"]), headers=auth_headers_for(other_patient)
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["code"] == "SlotConflict"
    assert "another time slot" in second.json()["message"]


@pytest.mark.asyncio
async def test_missing_fields(client: AsyncClient, patient):
    response = await client.post(
        f"{BASE}/", json={"notes": "no details"}, headers=auth_headers_for(patient)
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "MissingField"
    assert data["fields"] == ["department", "doctor_id", "appointment_date", "appointment_time"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"appointment_date": YESTERDAY.isoformat()}, "PastDate"),
        ({"appointment_time": "09:15"}, "InvalidTimeSlot"),
        ({"appointment_time": "17:30"}, "InvalidTimeSlot"),
        ({"appointment_date": TODAY.isoformat(), "appointment_time": "09:30"}, "PastTime"),
    ],
)
async def test_booking_validation_errors(client: AsyncClient, patient, doctor, overrides, code):
    response = await client.post(
        f"{BASE}/",
        json=booking_payload(doctor["id"], **overrides),
        headers=auth_headers_for(patient),
    )

    assert response.status_code == 400
    assert response.json()["code"] == code


@pytest.mark.asyncio
async def test_inactive_doctor_rejected(client: AsyncClient, patient, inactive_doctor):
    response = await client.post(
        f"{BASE}/", json=booking_payload(inactive_doctor["id"]), headers=auth_headers_for(patient)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "InvalidDoctor"


@pytest.mark.asyncio
async def test_only_patients_book(client: AsyncClient, doctor, admin):
    for user in (doctor, admin):
        response = await client.post(
            f"{BASE}/", json=booking_payload(doctor["id"]), headers=auth_headers_for(user)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "AccessDenied"


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient, doctor):
    response = await client.post(f"{BASE}/", json=booking_payload(doctor["id"]))
    assert response.status_code in (401, 403)

    response = await client.get(f"{BASE}/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_is_scoped_by_role(
    client: AsyncClient, patient, other_patient, doctor, other_doctor, admin, make_appointment
):
    await make_appointment(patient, doctor, appointment_time="09:00")
    await make_appointment(patient, other_doctor, appointment_time="09:30")
    await make_appointment(other_patient, doctor, appointment_time="10:00", status="confirmed")

    response = await client.get(f"{BASE}/", headers=auth_headers_for(patient))
    assert response.status_code == 200
    assert response.json()["total"] == 2
    assert {item["patient_id"] for item in response.json()["items"]} == {str(patient["id"])}

    response = await client.get(f"{BASE}/", headers=auth_headers_for(doctor))
    assert response.json()["total"] == 2
    assert {item["doctor_id"] for item in response.json()["items"]} == {str(doctor["id"])}

    response = await client.get(f"{BASE}/", headers=auth_headers_for(admin))
    assert response.json()["total"] == 3

    response = await client.get(
        f"{BASE}/", params={"status": "confirmed"}, headers=auth_headers_for(admin)
    )
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_get_appointment_visibility(
    client: AsyncClient, patient, other_patient, doctor, other_doctor, admin, make_appointment
):
    appointment = await make_appointment(patient, doctor)
    url = f"{BASE}/{appointment['id']}"

    assert (await client.get(url, headers=auth_headers_for(patient))).status_code == 200
    assert (await client.get(url, headers=auth_headers_for(doctor))).status_code == 200
    assert (await client.get(url, headers=auth_headers_for(admin))).status_code == 200

    response = await client.get(url, headers=auth_headers_for(other_patient))
    assert response.status_code == 403
    assert response.json()["code"] == "AccessDenied"

    response = await client.get(url, headers=auth_headers_for(other_doctor))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_unknown_appointment(client: AsyncClient, admin):
    response = await client.get(f"{BASE}/{uuid4()}", headers=auth_headers_for(admin))

    assert response.status_code == 404
    assert response.json()["code"] == "NotFound"


@pytest.mark.asyncio
async def test_doctor_cancel_without_reason(client: AsyncClient, patient, doctor, make_appointment):
    appointment = await make_appointment(patient, doctor)

    response = await client.patch(
        f"{BASE}/{appointment['id']}/status",
        json={"status": "cancelled"},
        headers=auth_headers_for(doctor),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "ReasonRequired"

    response = await client.patch(
        f"{BASE}/{appointment['id']}/status",
        json={"status": "cancelled", "cancellation_reason": "Out sick"},
        headers=auth_headers_for(doctor),
    )

    assert response.status_code == 200
    assert response.json()["cancelled_by"] == "doctor"


@pytest.mark.asyncio
async def test_patient_cannot_confirm(client: AsyncClient, patient, doctor, make_appointment):
    appointment = await make_appointment(patient, doctor)

    response = await client.patch(
        f"{BASE}/{appointment['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers_for(patient),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "ForbiddenTransition"


@pytest.mark.asyncio
async def test_unknown_status_is_a_validation_error(
    client: AsyncClient, patient, doctor, make_appointment
):
    appointment = await make_appointment(patient, doctor)

    response = await client.patch(
        f"{BASE}/{appointment['id']}/status",
        json={"status": "rescheduled"},
        headers=auth_headers_for(patient),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_available_times(client: AsyncClient, patient, doctor, make_appointment):
    await make_appointment(patient, doctor, appointment_time="10:00")
    await make_appointment(patient, doctor, appointment_time="11:00", status="cancelled")

    response = await client.get(
        f"{BASE}/available-times",
        params={"doctor_id": str(doctor["id"]), "date": TOMORROW.isoformat()},
        headers=auth_headers_for(patient),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["booked_times"] == ["10:00"]
    assert "10:00" not in data["available_times"]
    assert "11:00" in data["available_times"]
    assert data["available_times"][0] == "09:00"
    assert len(data["available_times"]) == 16


@pytest.mark.asyncio
async def test_available_times_today_skips_elapsed(client: AsyncClient, patient, doctor):
    response = await client.get(
        f"{BASE}/available-times",
        params={"doctor_id": str(doctor["id"]), "date": TODAY.isoformat()},
        headers=auth_headers_for(patient),
    )

    assert response.status_code == 200
    assert response.json()["available_times"][0] == "10:30"


@pytest.mark.asyncio
async def test_available_times_for_non_doctor(client: AsyncClient, patient, other_patient):
    response = await client.get(
        f"{BASE}/available-times",
        params={"doctor_id": str(other_patient["id"]), "date": TOMORROW.isoformat()},
        headers=auth_headers_for(patient),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "InvalidDoctor"


@pytest.mark.asyncio
async def test_expiry_sweep_endpoint(
    client: AsyncClient, patient, doctor, admin, make_appointment
):
    # Four hours after the frozen 10:15
    appointment = await make_appointment(
        patient, doctor, appointment_date=TODAY, appointment_time="14:15"
    )

    response = await client.post(f"{BASE}/expiry-sweep", headers=auth_headers_for(patient))
    assert response.status_code == 403

    response = await client.post(f"{BASE}/expiry-sweep", headers=auth_headers_for(admin))
    assert response.status_code == 200
    assert response.json() == {"cancelled": 1}

    response = await client.get(f"{BASE}/{appointment['id']}", headers=auth_headers_for(patient))
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancelled_by"] == "system"
    assert response.json()["cancellation_reason"].startswith("Automatically cancelled")


@pytest.mark.asyncio
async def test_store_outage_returns_retry_after(client: AsyncClient, admin, monkeypatch):
    async def unavailable(self, appointment_id):
        raise TransientStoreError()

    monkeypatch.setattr(AppointmentStore, "find_by_id", unavailable)

    response = await client.get(f"{BASE}/{uuid4()}", headers=auth_headers_for(admin))

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["code"] == "TransientStoreError"


@pytest.mark.asyncio
async def test_database_outage_during_booking_returns_retry_after(
    client: AsyncClient, patient, doctor, monkeypatch
):
    """Test user and doctor lookups report a lost database as 503, not 500."""

    async def connection_lost(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection reset"))

    monkeypatch.setattr(AsyncSession, "execute", connection_lost)

    response = await client.post(
        f"{BASE}/", json=booking_payload(doctor["id"]), headers=auth_headers_for(patient)
    )

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["code"] == "TransientStoreError"


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient):
    response = await client.get("/api/v1/ping", headers={"X-Request-ID": "abc123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.asyncio
async def test_booking_lifecycle_scenario(
    client: AsyncClient, clock, patient, other_patient, doctor, make_appointment
):
    """Test booking, a conflicting booking, confirmation and a foreign cancel."""
    clock.current = datetime(2025, 6, 9, 12, 0, tzinfo=UTC)
    payload = booking_payload(doctor["id"], appointment_date="2025-06-10", appointment_time="09:00")

    response = await client.post(f"{BASE}/", json=payload, headers=auth_headers_for(patient))
    assert response.status_code == 201
    booked = response.json()
    assert booked["status"] == "pending"

    response = await client.post(f"{BASE}/", json=payload, headers=auth_headers_for(other_patient))
    assert response.status_code == 409
    assert response.json()["code"] == "SlotConflict"

    response = await client.patch(
        f"{BASE}/{booked['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers_for(doctor),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["confirmed_at"] is not None

    foreign = await make_appointment(
        other_patient, doctor, appointment_date=date(2025, 6, 10), appointment_time="11:00"
    )
    response = await client.patch(
        f"{BASE}/{foreign['id']}/status",
        json={"status": "cancelled"},
        headers=auth_headers_for(patient),
    )
    assert response.status_code == 403
    assert response.json()["code"] == "AccessDenied"
