"""Shared statement handling for session-backed stores.

Every statement runs under a timeout. Timeouts and lost connections surface
as ``TransientStoreError`` so callers answer 503 instead of a generic 500.
"""

import asyncio
from typing import Any

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from app.config import settings
from app.core.exceptions import TransientStoreError

logger = structlog.get_logger(__name__)

_TRANSIENT_ERRORS = (TimeoutError, OperationalError, InterfaceError, PoolTimeoutError)

Record = dict[str, Any]


class SessionStore:
    """Base for stores that run statements on an async session."""

    def __init__(
        self,
        db: AsyncSession,
        timeout: float | None = None,
        read_retries: int | None = None,
    ):
        """
        Initialize store with database session.

        Args:
            db: Database session
            timeout: Seconds before a single statement is abandoned
            read_retries: Extra attempts for idempotent reads on transient errors
        """
        self.db = db
        self.timeout = settings.store_timeout_seconds if timeout is None else timeout
        self.read_retries = settings.store_read_retries if read_retries is None else read_retries

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except Exception as e:
            logger.warning("store_rollback_failed", error=str(e))

    async def _execute(self, stmt: Executable) -> Any:
        """Run one statement within the store timeout."""
        try:
            return await asyncio.wait_for(self.db.execute(stmt), timeout=self.timeout)
        except IntegrityError:
            raise
        except _TRANSIENT_ERRORS as e:
            await self._rollback()
            raise TransientStoreError() from e
        except DBAPIError as e:
            if e.connection_invalidated:
                await self._rollback()
                raise TransientStoreError() from e
            raise

    async def _commit(self) -> None:
        try:
            await asyncio.wait_for(self.db.commit(), timeout=self.timeout)
        except _TRANSIENT_ERRORS as e:
            await self._rollback()
            raise TransientStoreError() from e

    async def _read(self, stmt: Executable) -> list[Record]:
        """Run an idempotent query, retrying transient failures."""
        attempt = 0
        while True:
            try:
                result = await self._execute(stmt)
                return [dict(row) for row in result.mappings().all()]
            except TransientStoreError:
                if attempt >= self.read_retries:
                    raise
                attempt += 1
                logger.warning("store_read_retry", attempt=attempt, max_retries=self.read_retries)
