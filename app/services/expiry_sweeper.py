"""Automatic expiry of unconfirmed appointments.

Pending appointments that the doctor has not confirmed by the time they are
within the confirmation deadline (6 hours by default) are cancelled on behalf
of the system. The sweep runs as a single supervised asyncio task started
from the application lifespan.
"""

import asyncio
from datetime import timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock
from app.schemas.appointments import AppointmentStatus, CancelledBy
from app.services.appointment_store import AppointmentStore
from app.services.slot_calculator import slot_instant

logger = structlog.get_logger(__name__)

AUTO_CANCEL_REASON = (
    "Automatically cancelled: Doctor did not confirm appointment within "
    "{hours:g} hours before scheduled time."
)


def auto_cancel_reason(deadline_hours: float) -> str:
    """Fixed system message recorded on auto-cancelled appointments."""
    return AUTO_CANCEL_REASON.format(hours=deadline_hours)


class ExpirySweeper:
    """Cancels pending appointments that reached their confirmation deadline."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock,
        deadline_hours: float = 6,
        interval_seconds: float = 15 * 60,
        initial_delay_seconds: float = 10,
    ):
        """
        Initialize sweeper.

        Args:
            session_factory: Factory for the sweeper's own database sessions
            clock: Time source
            deadline_hours: Pending appointments this close to their start are cancelled
            interval_seconds: Pause between sweeps
            initial_delay_seconds: Pause before the first sweep
        """
        self.session_factory = session_factory
        self.clock = clock
        self.deadline_hours = deadline_hours
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        """Whether the background task is alive."""
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """
        Run one sweep cycle.

        Returns:
            Number of appointments cancelled
        """
        now = self.clock.now()
        deadline = timedelta(hours=self.deadline_hours)
        reason = auto_cancel_reason(self.deadline_hours)
        cancelled = 0

        async with self.session_factory() as session:
            store = AppointmentStore(session)

            try:
                pending = await store.find_by_status(AppointmentStatus.PENDING)
            except Exception:
                logger.exception("expiry_sweep_load_failed")
                return 0

            for appointment in pending:
                try:
                    starts_at = slot_instant(
                        appointment["appointment_date"],
                        appointment["appointment_time"],
                        now.tzinfo,
                    )
                except ValueError:
                    logger.exception(
                        "appointment_auto_cancel_failed",
                        appointment_id=str(appointment["id"]),
                        appointment_time=appointment["appointment_time"],
                    )
                    continue
                time_left = starts_at - now

                # Past appointments and those beyond the deadline stay as they are
                if not timedelta(0) <= time_left <= deadline:
                    continue

                try:
                    updated = await store.update(
                        appointment["id"],
                        {
                            "status": AppointmentStatus.CANCELLED.value,
                            "cancelled_by": CancelledBy.SYSTEM.value,
                            "cancellation_reason": reason,
                            "auto_cancelled_at": now,
                            "updated_at": now,
                        },
                        expected_status=AppointmentStatus.PENDING,
                    )
                except Exception:
                    logger.exception(
                        "appointment_auto_cancel_failed",
                        appointment_id=str(appointment["id"]),
                    )
                    await session.rollback()
                    continue

                if updated is None:
                    # Confirmed or cancelled by someone else since loading
                    continue

                cancelled += 1
                logger.warning(
                    "appointment_auto_cancelled",
                    appointment_id=str(appointment["id"]),
                    doctor_name=appointment["doctor_name"],
                    patient_email=appointment["patient_email"],
                    starts_at=starts_at.isoformat(),
                    hours_until=round(time_left.total_seconds() / 3600, 2),
                )

        logger.info("expiry_sweep_completed", pending=len(pending), cancelled=cancelled)
        return cancelled

    async def _run_forever(self) -> None:
        await asyncio.sleep(self.initial_delay_seconds)
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("expiry_sweep_failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start the periodic sweep; calling it twice keeps a single task."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_forever(), name="appointment-expiry-sweeper")
        logger.info(
            "expiry_sweeper_started",
            interval_seconds=self.interval_seconds,
            initial_delay_seconds=self.initial_delay_seconds,
            deadline_hours=self.deadline_hours,
        )

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("expiry_sweeper_stopped")
