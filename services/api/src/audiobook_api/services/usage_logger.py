"""Usage audit log: language resolution, persistence and the write-behind queue."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from audiobook_shared.db import DatabaseConnection
from audiobook_shared.db.models import Language, UsageLogEntry
from audiobook_shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UsageEvent:
    """A served request waiting to be written to ``api_usage_log``."""

    user_id: int
    endpoint: str
    method: str
    language_code: str


class UsageLogService:
    """Writes usage log rows with an explicit session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_language(self, language_code: str | None) -> int | None:
        """Look up a language id by code, ignoring case and surrounding whitespace."""
        code = (language_code or "").strip().lower()
        if not code:
            return None
        result = await self.session.execute(
            select(Language.id).where(func.lower(Language.code) == code).limit(1)
        )
        return result.scalar_one_or_none()

    async def log(
        self,
        user_id: int,
        endpoint: str,
        method: str,
        language_code: str | None,
    ) -> bool:
        """Append one usage row.

        Returns:
            False when the language is unknown and nothing was written.
        """
        language_id = await self.resolve_language(language_code)
        if language_id is None:
            logger.warning(
                "Skipping usage log for unknown language",
                user_id=user_id,
                endpoint=endpoint,
                language=language_code,
            )
            return False

        self.session.add(
            UsageLogEntry(
                user_id=user_id,
                language_id=language_id,
                endpoint=endpoint,
                method=method.upper(),
            )
        )
        await self.session.commit()
        return True


class UsageLogQueue:
    """Bounded in-process queue drained by a single consumer task.

    ``enqueue`` never blocks and never raises; a full queue drops the event.
    The consumer writes each event in its own session, so a failed write
    affects only that event.
    """

    def __init__(
        self,
        db: DatabaseConnection,
        maxsize: int = 1000,
        drain_timeout: float = 5.0,
    ) -> None:
        self._db = db
        self._queue: asyncio.Queue[UsageEvent] = asyncio.Queue(maxsize=maxsize)
        self._drain_timeout = drain_timeout
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def enqueue(self, event: UsageEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Usage log queue full, dropping event",
                user_id=event.user_id,
                endpoint=event.endpoint,
                queue_size=self._queue.maxsize,
            )
            return False
        return True

    async def submit(self, event: UsageEvent) -> None:
        """Coroutine form of :meth:`enqueue` for use as a background task."""
        self.enqueue(event)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._consume(), name="usage-log-consumer")
        logger.info("Usage log consumer started")

    async def join(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Drain pending events, bounded by the drain timeout, then stop."""
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=self._drain_timeout)
        except asyncio.TimeoutError:
            logger.warning("Usage log drain timed out", dropped=self._queue.qsize())

        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Usage log consumer stopped")

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._write(event)
            except Exception:
                logger.exception(
                    "Failed to write usage log",
                    user_id=event.user_id,
                    endpoint=event.endpoint,
                    method=event.method,
                )
            finally:
                self._queue.task_done()

    async def _write(self, event: UsageEvent) -> None:
        async with self._db.session() as session:
            await UsageLogService(session).log(
                event.user_id,
                event.endpoint,
                event.method,
                event.language_code,
            )
