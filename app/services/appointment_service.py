"""Appointment queries scoped to the caller's role."""

from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.exceptions import AccessDeniedError
from app.schemas.appointments import (
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AvailableTimesResponse,
)
from app.schemas.users import UserRole
from app.services.appointment_store import AppointmentStore
from app.services.directory_service import DirectoryService
from app.services.slot_calculator import ClinicHours, calculate_available_slots


class AppointmentService:
    """Service for reading appointments and availability."""

    def __init__(self, db: AsyncSession, directory: DirectoryService | None = None):
        """Initialize service with database session."""
        self.db = db
        self.store = AppointmentStore(db)
        self.directory = directory or DirectoryService()

    @staticmethod
    def _check_visibility(row: dict, user_id: UUID, role: UserRole) -> None:
        if role == UserRole.PATIENT and row["patient_id"] != user_id:
            raise AccessDeniedError()
        if role == UserRole.DOCTOR and row["doctor_id"] != user_id:
            raise AccessDeniedError("You can only view your own appointments")

    async def get_appointment(
        self,
        appointment_id: UUID,
        user_id: UUID,
        role: UserRole,
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Args:
            appointment_id: Appointment ID
            user_id: ID of requesting user
            role: Role of requesting user

        Returns:
            Appointment details

        Raises:
            NotFoundException: If appointment not found
            AccessDeniedError: If a patient or doctor asks for someone else's appointment
        """
        row = await self.store.find_by_id(appointment_id)
        self._check_visibility(row, user_id, role)
        return AppointmentResponse.model_validate(row)

    async def list_appointments(
        self,
        user_id: UUID,
        role: UserRole,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List appointments visible to the caller.

        Patients see their own bookings, doctors the ones assigned to them,
        and staff see every appointment.
        """
        patient_id = user_id if role == UserRole.PATIENT else None
        doctor_id = user_id if role == UserRole.DOCTOR else None

        total, rows = await self.store.list_page(
            filters, patient_id=patient_id, doctor_id=doctor_id
        )

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(row) for row in rows],
        )

    async def get_available_times(
        self,
        doctor_id: UUID,
        appointment_date: date,
        clock: Clock,
        hours: ClinicHours | None = None,
    ) -> AvailableTimesResponse:
        """
        Compute free slots for a doctor on a date.

        Raises:
            InvalidDoctorError: If the doctor is unknown, not a doctor, or inactive
        """
        await self.directory.get_bookable_doctor(self.db, doctor_id)

        booked = await self.store.booked_times(doctor_id, appointment_date)
        available = calculate_available_slots(appointment_date, booked, clock.now(), hours)

        return AvailableTimesResponse(
            doctor_id=doctor_id,
            date=appointment_date,
            available_times=available,
            booked_times=sorted(booked),
        )
