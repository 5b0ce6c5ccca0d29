"""Doctor directory endpoints."""

from datetime import date

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentUser, DatabaseSession, Directory
from app.schemas.appointments import Department
from app.schemas.doctors import DoctorCountResponse, DoctorListResponse

router = APIRouter()


@router.get(
    "/",
    response_model=DoctorListResponse,
    status_code=status.HTTP_200_OK,
    summary="List active doctors",
)
async def list_doctors(
    current_user: CurrentUser,
    db: DatabaseSession,
    directory: Directory,
    department: Department | None = Query(None, description="Filter by department"),
) -> DoctorListResponse:
    """
    List active doctors that can take appointments.

    - **department**: Optional department filter
    """
    doctors = await directory.list_active_doctors(db, department)
    return DoctorListResponse(doctors=doctors)


@router.get(
    "/available",
    response_model=DoctorListResponse,
    status_code=status.HTTP_200_OK,
    summary="List doctors free at a slot",
)
async def list_available_doctors(
    current_user: CurrentUser,
    db: DatabaseSession,
    directory: Directory,
    department: Department | None = Query(None, description="Filter by department"),
    appointment_date: date | None = Query(None, alias="date", description="Appointment date"),
    appointment_time: str | None = Query(None, alias="time", description="Slot time (HH:MM)"),
) -> DoctorListResponse:
    """
    List active doctors, excluding those already booked at the given slot.

    The slot filter applies only when both **date** and **time** are given.
    """
    doctors = await directory.list_available_doctors(
        db,
        department=department,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
    )
    return DoctorListResponse(doctors=doctors)


@router.get(
    "/count",
    response_model=DoctorCountResponse,
    status_code=status.HTTP_200_OK,
    summary="Count active doctors",
)
async def count_doctors(
    current_user: CurrentUser,
    db: DatabaseSession,
    directory: Directory,
    department: Department | None = Query(None, description="Filter by department"),
) -> DoctorCountResponse:
    """Count active doctors, optionally within one department."""
    return DoctorCountResponse(count=await directory.count_active_doctors(db, department))
