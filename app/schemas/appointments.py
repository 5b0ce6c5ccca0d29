"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        """Cancelled and completed appointments never change again."""
        return self in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED)


# Statuses that occupy a doctor's slot
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class CancelledBy(str, Enum):
    """Who cancelled an appointment."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    SYSTEM = "system"


class Department(str, Enum):
    """Clinical departments."""

    GENERAL = "general"
    CARDIOLOGY = "cardiology"
    PEDIATRICS = "pediatrics"
    ORTHOPEDICS = "orthopedics"
    NEUROLOGY = "neurology"
    DERMATOLOGY = "dermatology"


class AppointmentCreate(BaseModel):
    """
    Schema for booking a new appointment.

    Required fields are optional here so that the booking engine can report
    every missing one at once.
    """

    department: Department | None = None
    doctor_id: UUID | None = None
    appointment_date: date | None = None
    appointment_time: str | None = Field(None, max_length=5)
    notes: str | None = Field(None, max_length=1000)
    is_emergency: bool = False

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace from notes."""
        return v.strip() if v else v


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    cancellation_reason: str | None = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    patient_email: str
    department: Department
    doctor_id: UUID
    doctor_name: str
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    is_emergency: bool
    notes: str | None = None
    cancelled_by: CancelledBy | None = None
    cancellation_reason: str | None = None
    confirmed_at: datetime | None = None
    auto_cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AvailableTimesResponse(BaseModel):
    """Bookable and occupied times for one doctor on one date."""

    doctor_id: UUID
    date: date
    available_times: list[str]
    booked_times: list[str]


class ExpirySweepResponse(BaseModel):
    """Result of an on-demand expiry sweep."""

    cancelled: int
