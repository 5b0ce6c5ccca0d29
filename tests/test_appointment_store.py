"""Tests for appointment storage and its failure handling."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import NotFoundException, TransientStoreError
from app.models.appointments import appointments
from app.schemas.appointments import AppointmentFilters, AppointmentStatus
from app.services.appointment_store import AppointmentStore
from conftest import TODAY, TOMORROW


def _result(rows):
    result = MagicMock()
    result.mappings.return_value.all.return_value = rows
    return result


def _operational_error():
    return OperationalError("SELECT 1", {}, Exception("connection reset"))


@pytest.mark.asyncio
async def test_read_retries_transient_errors():
    """Test idempotent reads are retried after a dropped connection."""
    session = MagicMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock(side_effect=[_operational_error(), _result([{"id": 1}])])
    store = AppointmentStore(session, timeout=1, read_retries=1)

    rows = await store.find_by_status(AppointmentStatus.PENDING)

    assert rows == [{"id": 1}]
    assert session.execute.await_count == 2
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_read_gives_up_after_retries():
    session = MagicMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock(side_effect=_operational_error())
    store = AppointmentStore(session, timeout=1, read_retries=2)

    with pytest.raises(TransientStoreError):
        await store.find_by_status(AppointmentStatus.PENDING)

    assert session.execute.await_count == 3


@pytest.mark.asyncio
async def test_writes_are_not_retried():
    session = MagicMock()
    session.rollback = AsyncMock()
    session.commit = AsyncMock()
    session.execute = AsyncMock(side_effect=_operational_error())
    store = AppointmentStore(session, timeout=1, read_retries=2)

    with pytest.raises(TransientStoreError):
        await store.update(
            uuid4(), {"status": "confirmed"}, expected_status=AppointmentStatus.PENDING
        )

    assert session.execute.await_count == 1
    session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_slow_statement_times_out():
    async def hang(*args, **kwargs):
        await asyncio.sleep(10)

    session = MagicMock()
    session.rollback = AsyncMock()
    session.execute = hang
    store = AppointmentStore(session, timeout=0.01, read_retries=0)

    with pytest.raises(TransientStoreError) as exc_info:
        await store.find_by_id(uuid4())

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_find_by_id_missing(db_session):
    with pytest.raises(NotFoundException):
        await AppointmentStore(db_session).find_by_id(uuid4())


@pytest.mark.asyncio
async def test_unguarded_update_of_missing_appointment(db_session):
    with pytest.raises(NotFoundException):
        await AppointmentStore(db_session).update(uuid4(), {"notes": "x"})


@pytest.mark.asyncio
async def test_guarded_update_reports_stale_status(db_session, patient, doctor, make_appointment):
    appointment = await make_appointment(patient, doctor, status="confirmed")

    result = await AppointmentStore(db_session).update(
        appointment["id"],
        {"status": "cancelled", "cancelled_by": "system"},
        expected_status=AppointmentStatus.PENDING,
    )

    assert result is None
    stored = await AppointmentStore(db_session).find_by_id(appointment["id"])
    assert stored["status"] == "confirmed"


@pytest.mark.asyncio
async def test_queries_by_doctor_patient_and_status(
    db_session, patient, other_patient, doctor, other_doctor, make_appointment
):
    await make_appointment(patient, doctor, appointment_time="09:00")
    await make_appointment(patient, doctor, appointment_time="11:00", status="confirmed")
    await make_appointment(other_patient, doctor, appointment_time="12:00", status="cancelled")
    await make_appointment(
        other_patient, other_doctor, appointment_date=TODAY, appointment_time="15:00"
    )
    store = AppointmentStore(db_session)

    by_doctor = await store.find_by_doctor(doctor["id"])
    assert [row["appointment_time"] for row in by_doctor] == ["09:00", "11:00", "12:00"]

    by_patient = await store.find_by_patient(other_patient["id"])
    assert [row["appointment_date"] for row in by_patient] == [TOMORROW, TODAY]

    pending = await store.find_by_status(AppointmentStatus.PENDING)
    assert len(pending) == 2

    assert sorted(await store.booked_times(doctor["id"], TOMORROW)) == ["09:00", "11:00"]
    assert await store.busy_doctor_ids(TOMORROW, "12:00") == set()
    assert await store.busy_doctor_ids(TOMORROW, "09:00") == {doctor["id"]}


@pytest.mark.asyncio
async def test_list_page_filters_and_paginates(db_session, patient, doctor, make_appointment):
    for slot in ("09:00", "09:30", "10:00", "10:30"):
        await make_appointment(patient, doctor, appointment_time=slot)
    await make_appointment(patient, doctor, appointment_date=TODAY, appointment_time="16:00")
    store = AppointmentStore(db_session)

    total, rows = await store.list_page(
        AppointmentFilters(page=1, page_size=2), patient_id=patient["id"]
    )
    assert total == 5
    assert [row["appointment_time"] for row in rows] == ["10:30", "10:00"]

    total, rows = await store.list_page(
        AppointmentFilters(from_date=TODAY, to_date=TODAY), doctor_id=doctor["id"]
    )
    assert total == 1
    assert rows[0]["appointment_time"] == "16:00"

    total, rows = await store.list_page(AppointmentFilters(status=AppointmentStatus.CONFIRMED))
    assert total == 0
    assert rows == []


def test_pending_schedule_index_is_declared():
    """Test the partial index used by the expiry sweep is part of the table metadata."""
    index = next(i for i in appointments.indexes if i.name == "ix_appointments_pending_schedule")

    assert [c.name for c in index.columns] == ["appointment_date", "appointment_time"]
    assert not index.unique
