"""Role-gated appointment status transitions.

Each caller role maps to one policy object. A policy decides whether the
caller may touch the appointment at all and, if so, which column patch the
requested status change turns into. The service itself only loads, applies
the patch with a status guard, and retries when another writer got there
first.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.exceptions import (
    AccessDeniedError,
    ConcurrentUpdateError,
    ForbiddenTransitionError,
    ReasonRequiredError,
)
from app.schemas.appointments import AppointmentResponse, AppointmentStatus, CancelledBy
from app.schemas.users import UserRole
from app.services.appointment_store import AppointmentStore

logger = structlog.get_logger(__name__)

MAX_UPDATE_ATTEMPTS = 3


@dataclass(frozen=True)
class TransitionRequest:
    """A caller asking to move an appointment to a new status."""

    actor_id: UUID
    actor_role: UserRole
    status: AppointmentStatus
    cancellation_reason: str | None = None

    @property
    def reason(self) -> str | None:
        """Cancellation reason with whitespace trimmed, None if blank."""
        if self.cancellation_reason is None:
            return None
        return self.cancellation_reason.strip() or None


class TransitionPolicy(Protocol):
    """Rules for one caller role."""

    def check_access(self, appointment: dict[str, Any], request: TransitionRequest) -> None:
        """Raise AccessDeniedError if the caller may not manage this appointment."""
        ...

    def build_patch(
        self,
        appointment: dict[str, Any],
        request: TransitionRequest,
        now: datetime,
    ) -> dict[str, Any]:
        """Return the column changes for the transition, empty for a no-op."""
        ...


def _ensure_not_terminal(appointment: dict[str, Any]) -> AppointmentStatus:
    current = AppointmentStatus(appointment["status"])
    if current.is_terminal:
        raise ForbiddenTransitionError(f"Appointment is already {current.value}")
    return current


class PatientPolicy:
    """Patients may only cancel their own appointments."""

    def check_access(self, appointment: dict[str, Any], request: TransitionRequest) -> None:
        if appointment["patient_id"] != request.actor_id:
            raise AccessDeniedError()

    def build_patch(
        self,
        appointment: dict[str, Any],
        request: TransitionRequest,
        now: datetime,
    ) -> dict[str, Any]:
        if request.status != AppointmentStatus.CANCELLED:
            raise ForbiddenTransitionError("Patients can only cancel appointments")
        _ensure_not_terminal(appointment)

        return {
            "status": AppointmentStatus.CANCELLED.value,
            "cancelled_by": CancelledBy.PATIENT.value,
            "cancellation_reason": request.reason,
        }


class DoctorPolicy:
    """Doctors confirm or cancel appointments assigned to them."""

    def check_access(self, appointment: dict[str, Any], request: TransitionRequest) -> None:
        if appointment["doctor_id"] != request.actor_id:
            raise AccessDeniedError("You can only manage your own appointments")

    def build_patch(
        self,
        appointment: dict[str, Any],
        request: TransitionRequest,
        now: datetime,
    ) -> dict[str, Any]:
        if request.status == AppointmentStatus.CONFIRMED:
            current = _ensure_not_terminal(appointment)
            if current != AppointmentStatus.PENDING:
                raise ForbiddenTransitionError("Only pending appointments can be confirmed")
            return {"status": AppointmentStatus.CONFIRMED.value, "confirmed_at": now}

        if request.status == AppointmentStatus.CANCELLED:
            if request.reason is None:
                raise ReasonRequiredError()
            _ensure_not_terminal(appointment)
            return {
                "status": AppointmentStatus.CANCELLED.value,
                "cancelled_by": CancelledBy.DOCTOR.value,
                "cancellation_reason": request.reason,
            }

        raise ForbiddenTransitionError("Doctors can only confirm or cancel appointments")


class StaffPolicy:
    """Admins, nurses and receptionists set any status on any appointment."""

    def check_access(self, appointment: dict[str, Any], request: TransitionRequest) -> None:
        return None

    def build_patch(
        self,
        appointment: dict[str, Any],
        request: TransitionRequest,
        now: datetime,
    ) -> dict[str, Any]:
        current = _ensure_not_terminal(appointment)
        if request.status == current:
            return {}

        patch: dict[str, Any] = {"status": request.status.value}
        if request.status == AppointmentStatus.CONFIRMED and appointment["confirmed_at"] is None:
            patch["confirmed_at"] = now
        elif request.status == AppointmentStatus.CANCELLED:
            # Staff act on behalf of the clinic
            patch["cancelled_by"] = CancelledBy.SYSTEM.value
            patch["cancellation_reason"] = request.reason
        return patch


_STAFF_POLICY = StaffPolicy()

POLICIES: dict[UserRole, TransitionPolicy] = {
    UserRole.PATIENT: PatientPolicy(),
    UserRole.DOCTOR: DoctorPolicy(),
    UserRole.ADMIN: _STAFF_POLICY,
    UserRole.NURSE: _STAFF_POLICY,
    UserRole.RECEPTIONIST: _STAFF_POLICY,
}


class TransitionService:
    """Applies status changes under the role policies."""

    def __init__(self, db: AsyncSession, clock: Clock):
        """Initialize service with database session and clock."""
        self.store = AppointmentStore(db)
        self.clock = clock

    async def update_status(
        self,
        appointment_id: UUID,
        actor_id: UUID,
        actor_role: UserRole,
        status: AppointmentStatus,
        cancellation_reason: str | None = None,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status on behalf of a caller.

        Args:
            appointment_id: Appointment ID
            actor_id: ID of the requesting user
            actor_role: Role of the requesting user
            status: Requested status
            cancellation_reason: Reason, required when a doctor cancels

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If appointment not found
            AccessDeniedError: If the caller does not own the appointment
            ForbiddenTransitionError: If the role or current state forbids the change
            ReasonRequiredError: If a doctor cancels without a reason
            ConcurrentUpdateError: If the record kept changing during the update
        """
        request = TransitionRequest(
            actor_id=actor_id,
            actor_role=UserRole(actor_role),
            status=AppointmentStatus(status),
            cancellation_reason=cancellation_reason,
        )
        policy = POLICIES[request.actor_role]

        for attempt in range(1, MAX_UPDATE_ATTEMPTS + 1):
            appointment = await self.store.find_by_id(appointment_id)
            policy.check_access(appointment, request)

            now = self.clock.now()
            patch = policy.build_patch(appointment, request, now)
            if not patch:
                return AppointmentResponse.model_validate(appointment)

            patch["updated_at"] = now
            previous = AppointmentStatus(appointment["status"])
            updated = await self.store.update(appointment_id, patch, expected_status=previous)
            if updated is not None:
                logger.info(
                    "appointment_status_changed",
                    appointment_id=str(appointment_id),
                    actor_id=str(actor_id),
                    actor_role=request.actor_role.value,
                    old_status=previous.value,
                    new_status=updated["status"],
                )
                return AppointmentResponse.model_validate(updated)

            logger.info(
                "appointment_status_update_stale",
                appointment_id=str(appointment_id),
                attempt=attempt,
            )

        raise ConcurrentUpdateError()
