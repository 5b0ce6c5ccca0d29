"""Durable appointment storage.

Wraps the ``appointments`` table with the operations the booking, transition
and expiry components need. Slot uniqueness is enforced by the
``uq_appointments_active_slot`` partial index, so a booking that loses a race
fails at insert time instead of silently double-booking.
"""

from collections.abc import Iterable
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import and_, func, insert, select, true, update
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundException, SlotConflictError
from app.models.appointments import appointments
from app.schemas.appointments import ACTIVE_STATUSES, AppointmentFilters, AppointmentStatus
from app.services.store_base import Record, SessionStore


def _status_values(statuses: Iterable[AppointmentStatus | str]) -> list[str]:
    return [s.value if isinstance(s, AppointmentStatus) else s for s in statuses]


class AppointmentStore(SessionStore):
    """Appointment persistence on top of an async session."""

    async def create(self, values: Record) -> Record:
        """
        Insert a new appointment.

        Raises:
            SlotConflictError: If the slot is already held by an active appointment
            TransientStoreError: If the store timed out or lost its connection
        """
        values = {"id": uuid4(), **values}
        stmt = insert(appointments).values(**values).returning(appointments)

        try:
            result = await self._execute(stmt)
            row = result.mappings().one()
            await self._commit()
        except IntegrityError as e:
            await self._rollback()
            raise SlotConflictError() from e

        return dict(row)

    async def find_conflict(
        self,
        doctor_id: UUID,
        appointment_date: date,
        appointment_time: str,
        statuses: Iterable[AppointmentStatus | str] = ACTIVE_STATUSES,
    ) -> Record | None:
        """Find an appointment holding the given doctor slot."""
        stmt = (
            select(appointments)
            .where(
                and_(
                    appointments.c.doctor_id == doctor_id,
                    appointments.c.appointment_date == appointment_date,
                    appointments.c.appointment_time == appointment_time,
                    appointments.c.status.in_(_status_values(statuses)),
                )
            )
            .limit(1)
        )
        rows = await self._read(stmt)
        return rows[0] if rows else None

    async def find_by_id(self, appointment_id: UUID) -> Record:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        rows = await self._read(select(appointments).where(appointments.c.id == appointment_id))
        if not rows:
            raise NotFoundException("Appointment not found")
        return rows[0]

    async def update(
        self,
        appointment_id: UUID,
        patch: Record,
        expected_status: AppointmentStatus | None = None,
    ) -> Record | None:
        """
        Apply a patch atomically.

        With ``expected_status`` the update only happens if the stored status
        still matches, and None is returned when it no longer does.

        Raises:
            NotFoundException: If no guard was given and the appointment does not exist
        """
        stmt = update(appointments).where(appointments.c.id == appointment_id)
        if expected_status is not None:
            stmt = stmt.where(appointments.c.status == expected_status.value)
        stmt = stmt.values(**patch).returning(appointments)

        result = await self._execute(stmt)
        row = result.mappings().first()
        await self._commit()

        if row is None:
            if expected_status is None:
                raise NotFoundException("Appointment not found")
            return None
        return dict(row)

    async def find_by_doctor(
        self,
        doctor_id: UUID,
        appointment_date: date | None = None,
        statuses: Iterable[AppointmentStatus | str] | None = None,
    ) -> list[Record]:
        """List a doctor's appointments, earliest first."""
        conditions = [appointments.c.doctor_id == doctor_id]
        if appointment_date is not None:
            conditions.append(appointments.c.appointment_date == appointment_date)
        if statuses is not None:
            conditions.append(appointments.c.status.in_(_status_values(statuses)))

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.appointment_date, appointments.c.appointment_time)
        )
        return await self._read(stmt)

    async def find_by_patient(self, patient_id: UUID) -> list[Record]:
        """List a patient's appointments, latest first."""
        stmt = (
            select(appointments)
            .where(appointments.c.patient_id == patient_id)
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
        )
        return await self._read(stmt)

    async def find_by_status(self, status: AppointmentStatus) -> list[Record]:
        """List all appointments in one status, earliest first."""
        stmt = (
            select(appointments)
            .where(appointments.c.status == status.value)
            .order_by(appointments.c.appointment_date, appointments.c.appointment_time)
        )
        return await self._read(stmt)

    async def booked_times(self, doctor_id: UUID, appointment_date: date) -> list[str]:
        """Times held by active appointments for a doctor on a date."""
        rows = await self.find_by_doctor(doctor_id, appointment_date, ACTIVE_STATUSES)
        return [row["appointment_time"] for row in rows]

    async def busy_doctor_ids(self, appointment_date: date, appointment_time: str) -> set[UUID]:
        """Doctors holding an active appointment at the given slot."""
        stmt = select(appointments.c.doctor_id).where(
            and_(
                appointments.c.appointment_date == appointment_date,
                appointments.c.appointment_time == appointment_time,
                appointments.c.status.in_(_status_values(ACTIVE_STATUSES)),
            )
        )
        return {row["doctor_id"] for row in await self._read(stmt)}

    async def list_page(
        self,
        filters: AppointmentFilters,
        patient_id: UUID | None = None,
        doctor_id: UUID | None = None,
    ) -> tuple[int, list[Record]]:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters
            patient_id: Restrict to one patient
            doctor_id: Restrict to one doctor

        Returns:
            Total match count and the requested page, latest first
        """
        conditions = []
        if patient_id is not None:
            conditions.append(appointments.c.patient_id == patient_id)
        if doctor_id is not None:
            conditions.append(appointments.c.doctor_id == doctor_id)
        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)
        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)
        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        count_stmt = (
            select(func.count().label("total"))
            .select_from(appointments)
            .where(and_(true(), *conditions))
        )
        count_rows = await self._read(count_stmt)
        total = count_rows[0]["total"] if count_rows else 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            select(appointments)
            .where(and_(true(), *conditions))
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
            .limit(filters.page_size)
            .offset(offset)
        )
        return total, await self._read(stmt)
