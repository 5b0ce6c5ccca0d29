"""Read-only directory of clinic users and doctors."""

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidDoctorError
from app.core.redis_client import CacheManager
from app.models.users import users
from app.schemas.appointments import Department
from app.schemas.doctors import DoctorSummary
from app.schemas.users import UserRole
from app.services.appointment_store import AppointmentStore
from app.services.store_base import Record, SessionStore


def display_name(user: dict[str, Any]) -> str:
    """Full display name of a user."""
    return f"{user['first_name']} {user['last_name']}".strip()


def _active_doctor_conditions(department: Department | None) -> list:
    conditions = [users.c.role == UserRole.DOCTOR.value, users.c.is_active.is_(True)]
    if department:
        conditions.append(users.c.department == department.value)
    return conditions


class UserStore(SessionStore):
    """User queries with the same timeout and retry handling as appointments."""

    async def find_by_id(self, user_id: UUID) -> Record | None:
        rows = await self._read(select(users).where(users.c.id == user_id))
        return rows[0] if rows else None

    async def find_active_doctors(self, department: Department | None = None) -> list[Record]:
        stmt = (
            select(users)
            .where(and_(*_active_doctor_conditions(department)))
            .order_by(users.c.department, users.c.first_name)
        )
        return await self._read(stmt)

    async def count_active_doctors(self, department: Department | None = None) -> int:
        stmt = (
            select(func.count().label("total"))
            .select_from(users)
            .where(and_(*_active_doctor_conditions(department)))
        )
        rows = await self._read(stmt)
        return rows[0]["total"] if rows else 0


def _doctor_summary(row: Record) -> DoctorSummary:
    return DoctorSummary(
        id=row["id"],
        name=display_name(row),
        email=row["email"],
        phone=row["phone"],
        department=row["department"],
    )


class DirectoryService:
    """Lookup of users and active doctors."""

    # Cache TTL in seconds
    DOCTOR_LIST_CACHE_TTL = 300  # 5 minutes for lists

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_doctor_list_cache_key(department: Department | None) -> str:
        """Generate cache key for a doctor list."""
        return f"doctor:list:{department.value if department else 'all'}"

    async def get_user(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by ID."""
        return await UserStore(db).find_by_id(user_id)

    async def get_doctor(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """
        Get a doctor record by user ID.

        Never served from cache, since booking eligibility depends on the
        current ``is_active`` flag. Role and activity are returned as stored;
        callers decide eligibility.

        Returns:
            ``{id, name, department, is_active, role, email, phone}`` or None
        """
        user = await self.get_user(db, doctor_id)
        if not user:
            return None

        return {
            "id": user["id"],
            "name": display_name(user),
            "department": user["department"],
            "is_active": user["is_active"],
            "role": user["role"],
            "email": user["email"],
            "phone": user["phone"],
        }

    async def list_active_doctors(
        self,
        db: AsyncSession,
        department: Department | None = None,
    ) -> list[DoctorSummary]:
        """List active doctors ordered by department and first name."""
        cache_key = self._get_doctor_list_cache_key(department)
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached is not None:
                return [DoctorSummary.model_validate(item) for item in cached]

        rows = await UserStore(db).find_active_doctors(department)
        doctors = [_doctor_summary(row) for row in rows]

        if self.cache:
            self.cache.set_json(
                cache_key,
                [doctor.model_dump(mode="json") for doctor in doctors],
                ttl=self.DOCTOR_LIST_CACHE_TTL,
            )

        return doctors

    async def count_active_doctors(
        self,
        db: AsyncSession,
        department: Department | None = None,
    ) -> int:
        """Count active doctors."""
        return await UserStore(db).count_active_doctors(department)

    async def list_available_doctors(
        self,
        db: AsyncSession,
        department: Department | None = None,
        appointment_date: date | None = None,
        appointment_time: str | None = None,
    ) -> list[DoctorSummary]:
        """
        List active doctors, dropping those already booked at a given slot.

        Read straight from the database so a doctor deactivated moments ago
        is never offered. The slot filter only applies when both date and
        time are given.
        """
        rows = await UserStore(db).find_active_doctors(department)
        doctors = [_doctor_summary(row) for row in rows]

        if appointment_date and appointment_time:
            busy = await AppointmentStore(db).busy_doctor_ids(appointment_date, appointment_time)
            doctors = [doctor for doctor in doctors if doctor.id not in busy]

        return doctors

    async def get_bookable_doctor(self, db: AsyncSession, doctor_id: UUID) -> dict:
        """
        Get a doctor that can currently take appointments.

        Raises:
            InvalidDoctorError: If the user is unknown, not a doctor, or inactive
        """
        doctor = await self.get_doctor(db, doctor_id)
        if not doctor or doctor["role"] != UserRole.DOCTOR.value or not doctor["is_active"]:
            raise InvalidDoctorError()
        return doctor
