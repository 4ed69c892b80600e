"""Tests for the usage log service and its write-behind queue."""

import asyncio

import pytest
from sqlalchemy import select

from audiobook_api.services import CredentialStore, UsageEvent, UsageLogQueue, UsageLogService
from audiobook_shared.db.models import Language, UsageLogEntry

pytestmark = pytest.mark.integration


@pytest.fixture
async def user_id(session) -> int:
    result = await CredentialStore(session).create("logged@example.com", "hash")
    return result.user_id


async def log_rows(db) -> list[UsageLogEntry]:
    async with db.session() as session:
        result = await session.execute(select(UsageLogEntry).order_by(UsageLogEntry.id))
        return list(result.scalars())


class TestUsageLogService:
    """Language resolution and persistence."""

    @pytest.mark.parametrize("code", ["en", "EN", " en ", "Zh-CN"])
    async def test_resolves_language_case_insensitively(self, session, code):
        language_id = await UsageLogService(session).resolve_language(code)

        expected = await session.scalar(
            select(Language.id).where(Language.code == code.strip().lower())
        )
        assert language_id == expected is not None

    async def test_log_writes_entry(self, db, session, user_id):
        written = await UsageLogService(session).log(user_id, "/tts/synthesize", "post", "fr")

        assert written is True
        rows = await log_rows(db)
        assert len(rows) == 1
        assert rows[0].endpoint == "/tts/synthesize"
        assert rows[0].method == "POST"
        assert rows[0].timestamp is not None

    @pytest.mark.parametrize("code", ["xx", "", None])
    async def test_unknown_language_is_skipped(self, db, session, user_id, code):
        written = await UsageLogService(session).log(user_id, "/tts/synthesize", "POST", code)

        assert written is False
        assert await log_rows(db) == []


class TestUsageLogQueue:
    """Bounded queue drained by the consumer task."""

    async def test_consumer_writes_events(self, db, user_id):
        queue = UsageLogQueue(db)
        queue.start()
        try:
            assert queue.enqueue(UsageEvent(user_id, "/auth/me", "GET", "en")) is True
            assert queue.enqueue(UsageEvent(user_id, "/tts/synthesize", "POST", "de")) is True
            await queue.join()
        finally:
            await queue.stop()

        rows = await log_rows(db)
        assert [(r.endpoint, r.method) for r in rows] == [
            ("/auth/me", "GET"),
            ("/tts/synthesize", "POST"),
        ]

    async def test_full_queue_drops_events(self, db, user_id):
        queue = UsageLogQueue(db, maxsize=2)

        results = [queue.enqueue(UsageEvent(user_id, "/auth/me", "GET", "en")) for _ in range(3)]

        assert results == [True, True, False]
        assert queue.pending == 2

    async def test_stop_drains_pending_events(self, db, user_id):
        queue = UsageLogQueue(db)
        for _ in range(3):
            queue.enqueue(UsageEvent(user_id, "/auth/me", "GET", "en"))

        queue.start()
        await queue.stop()

        assert len(await log_rows(db)) == 3
        assert queue.running is False

    async def test_write_failure_does_not_stop_consumer(self, db, user_id):
        queue = UsageLogQueue(db)
        queue.start()
        try:
            # Unknown user violates the foreign key
            queue.enqueue(UsageEvent(user_id + 1000, "/auth/me", "GET", "en"))
            queue.enqueue(UsageEvent(user_id, "/auth/me", "GET", "en"))
            await queue.join()
            assert queue.running is True
        finally:
            await queue.stop()

        rows = await log_rows(db)
        assert [r.user_id for r in rows] == [user_id]

    async def test_drain_timeout_bounds_shutdown(self, db, user_id, monkeypatch):
        queue = UsageLogQueue(db, drain_timeout=0.05)

        async def slow_write(event):
            await asyncio.sleep(10)

        monkeypatch.setattr(queue, "_write", slow_write)
        queue.enqueue(UsageEvent(user_id, "/auth/me", "GET", "en"))
        queue.start()

        await asyncio.wait_for(queue.stop(), timeout=2)

        assert queue.running is False

    async def test_stop_without_start(self, db):
        await UsageLogQueue(db).stop()
