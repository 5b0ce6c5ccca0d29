"""Doctor schemas for request/response validation."""

from uuid import UUID

from pydantic import BaseModel

from app.schemas.appointments import Department


class DoctorSummary(BaseModel):
    """Active doctor as shown to patients choosing whom to book."""

    id: UUID
    name: str
    email: str
    phone: str | None = None
    department: Department

    model_config = {"from_attributes": True}


class DoctorListResponse(BaseModel):
    """List of doctors."""

    doctors: list[DoctorSummary]


class DoctorCountResponse(BaseModel):
    """Number of active doctors."""

    count: int
