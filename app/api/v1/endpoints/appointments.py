"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.config import settings
from app.core.exceptions import AccessDeniedError
from app.dependencies import (
    CurrentUser,
    DatabaseSession,
    Directory,
    SchedulingClock,
    SessionFactory,
)
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AvailableTimesResponse,
    ExpirySweepResponse,
)
from app.schemas.users import UserRole
from app.services.appointment_service import AppointmentService
from app.services.booking_service import BookingService
from app.services.expiry_sweeper import ExpirySweeper
from app.services.transition_service import TransitionService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
    directory: Directory,
    clock: SchedulingClock,
) -> AppointmentResponse:
    """
    Book an appointment for the authenticated patient.

    Regular bookings start pending until the doctor confirms them;
    emergency bookings are confirmed immediately.

    Raises:
        AccessDeniedError: If the caller is not a patient
    """
    if current_user["role"] != UserRole.PATIENT:
        raise AccessDeniedError("Only patients can book appointments")

    service = BookingService(db, clock, directory=directory)
    return await service.book_appointment(
        patient_id=current_user["id"],
        patient_email=current_user["email"],
        department=data.department,
        doctor_id=data.doctor_id,
        appointment_date=data.appointment_date,
        appointment_time=data.appointment_time,
        notes=data.notes,
        is_emergency=data.is_emergency,
    )


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments visible to the authenticated user.

    Args:
        current_user: Authenticated user
        db: Database session
        status_filter: Filter by status
        from_date: Earliest appointment date
        to_date: Latest appointment date
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(current_user["id"], current_user["role"], filters)


@router.get(
    "/available-times",
    response_model=AvailableTimesResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Available time slots for a doctor",
)
async def get_available_times(
    current_user: CurrentUser,
    db: DatabaseSession,
    directory: Directory,
    clock: SchedulingClock,
    doctor_id: UUID = Query(...),
    appointment_date: date = Query(..., alias="date"),
) -> AvailableTimesResponse:
    """Get bookable and already-booked times for a doctor on a date."""
    service = AppointmentService(db, directory=directory)
    return await service.get_available_times(doctor_id, appointment_date, clock)


@router.post(
    "/expiry-sweep",
    response_model=ExpirySweepResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Run the auto-expiry sweep now",
)
async def run_expiry_sweep(
    current_user: CurrentUser,
    session_factory: SessionFactory,
    clock: SchedulingClock,
) -> ExpirySweepResponse:
    """
    Cancel pending appointments past their confirmation deadline right away.

    Raises:
        AccessDeniedError: If the caller is not clinic staff
    """
    if not current_user["role"].is_staff:
        raise AccessDeniedError("Only clinic staff can run the expiry sweep")

    sweeper = ExpirySweeper(
        session_factory,
        clock,
        deadline_hours=settings.confirmation_deadline_hours,
    )
    return ExpirySweepResponse(cancelled=await sweeper.run_once())


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found
        AccessDeniedError: If the appointment belongs to someone else
    """
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id, current_user["id"], current_user["role"])


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
    clock: SchedulingClock,
) -> AppointmentResponse:
    """
    Confirm, cancel or complete an appointment.

    Patients may cancel their own appointments, doctors may confirm or
    cancel (with a reason) the ones assigned to them, and clinic staff may
    set any status.

    Args:
        appointment_id: Appointment ID
        data: Requested status and optional cancellation reason
        current_user: Authenticated user
        db: Database session
        clock: Time source

    Returns:
        Updated appointment
    """
    service = TransitionService(db, clock)
    return await service.update_status(
        appointment_id,
        actor_id=current_user["id"],
        actor_role=current_user["role"],
        status=data.status,
        cancellation_reason=data.cancellation_reason,
    )
