"""Appointment booking."""

from datetime import date
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.exceptions import (
    InvalidTimeSlotError,
    MissingFieldError,
    PastDateError,
    PastTimeError,
    SlotConflictError,
)
from app.schemas.appointments import AppointmentResponse, AppointmentStatus, Department
from app.services.appointment_store import AppointmentStore
from app.services.directory_service import DirectoryService
from app.services.slot_calculator import ClinicHours, slot_instant

logger = structlog.get_logger(__name__)


class BookingService:
    """Validates and creates appointment requests."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        directory: DirectoryService | None = None,
        hours: ClinicHours | None = None,
    ):
        """Initialize service with database session and clock."""
        self.db = db
        self.clock = clock
        self.store = AppointmentStore(db)
        self.directory = directory or DirectoryService()
        self.hours = hours or ClinicHours.from_settings()

    async def book_appointment(
        self,
        patient_id: UUID,
        patient_email: str,
        department: Department | None,
        doctor_id: UUID | None,
        appointment_date: date | None,
        appointment_time: str | None,
        notes: str | None = None,
        is_emergency: bool = False,
    ) -> AppointmentResponse:
        """
        Book a slot with a doctor.

        Emergency bookings skip doctor confirmation and are created confirmed.

        Args:
            patient_id: ID of the patient booking
            patient_email: Patient contact email, stored on the appointment
            department: Clinical department
            doctor_id: Doctor to book with
            appointment_date: Calendar date of the visit
            appointment_time: ``HH:MM`` slot on the clinic grid
            notes: Free-text notes for the doctor
            is_emergency: Whether to confirm immediately

        Returns:
            Created appointment

        Raises:
            MissingFieldError: If a required field is absent
            InvalidDoctorError: If the doctor is unknown, not a doctor, or inactive
            PastDateError: If the date is before today
            InvalidTimeSlotError: If the time is not a clinic slot
            PastTimeError: If the slot is today and already started
            SlotConflictError: If the doctor already has an active appointment there
        """
        missing = [
            name
            for name, value in (
                ("department", department),
                ("doctor_id", doctor_id),
                ("appointment_date", appointment_date),
                ("appointment_time", appointment_time),
            )
            if not value
        ]
        if missing:
            raise MissingFieldError(missing)

        doctor = await self.directory.get_bookable_doctor(self.db, doctor_id)

        now = self.clock.now()
        if appointment_date < now.date():
            raise PastDateError()

        if not self.hours.is_valid_slot(appointment_time):
            raise InvalidTimeSlotError(
                f"Invalid appointment time {appointment_time!r}. "
                f"Choose one of: {', '.join(self.hours.slots())}"
            )

        if (
            appointment_date == now.date()
            and slot_instant(appointment_date, appointment_time, now.tzinfo) <= now
        ):
            raise PastTimeError()

        existing = await self.store.find_conflict(doctor_id, appointment_date, appointment_time)
        if existing:
            raise SlotConflictError()

        values = {
            "patient_id": patient_id,
            "patient_email": patient_email,
            "department": Department(department).value,
            "doctor_id": doctor_id,
            "doctor_name": doctor["name"],
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "notes": notes or "",
            "is_emergency": is_emergency,
            "status": AppointmentStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }

        # Emergencies bypass doctor confirmation
        if is_emergency:
            values["status"] = AppointmentStatus.CONFIRMED.value
            values["confirmed_at"] = now

        try:
            row = await self.store.create(values)
        except SlotConflictError:
            logger.info(
                "appointment_slot_race_lost",
                doctor_id=str(doctor_id),
                date=appointment_date.isoformat(),
                time=appointment_time,
            )
            raise

        logger.info(
            "appointment_booked",
            appointment_id=str(row["id"]),
            doctor_id=str(doctor_id),
            patient_id=str(patient_id),
            date=appointment_date.isoformat(),
            time=appointment_time,
            status=row["status"],
            is_emergency=is_emergency,
        )

        return AppointmentResponse.model_validate(row)
