"""Per-user API call counters."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import insert, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from audiobook_shared.db.models import DEFAULT_CALLS_LIMIT, QuotaRecord
from audiobook_shared.logging import get_logger

from ..models.base import ApiUsage

logger = get_logger(__name__)


@dataclass(frozen=True)
class QuotaUsage:
    used: int
    limit: int


@dataclass(frozen=True)
class QuotaStatus:
    used: int
    limit: int
    exceeded: bool


class QuotaLedger:
    """Reads and mutates ``user_api_quota``.

    This is the only code path that changes ``calls_used``. Every write is a
    single SQL statement committed immediately, so concurrent increments from
    separate sessions never lose updates. A missing record is created on
    demand with an insert that ignores conflicts.
    """

    def __init__(self, session: AsyncSession, default_limit: int = DEFAULT_CALLS_LIMIT):
        self.session = session
        self.default_limit = default_limit

    def _insert_default(self, user_id: int):
        values = {"user_id": user_id, "calls_used": 0, "calls_limit": self.default_limit}
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite_insert(QuotaRecord).values(**values).on_conflict_do_nothing(
                index_elements=["user_id"]
            )
        if dialect == "postgresql":
            return postgresql_insert(QuotaRecord).values(**values).on_conflict_do_nothing(
                index_elements=["user_id"]
            )
        # mysql / mariadb
        return insert(QuotaRecord).values(**values).prefix_with("IGNORE")

    async def _read(self, user_id: int) -> QuotaUsage | None:
        result = await self.session.execute(
            select(QuotaRecord.calls_used, QuotaRecord.calls_limit).where(
                QuotaRecord.user_id == user_id
            )
        )
        row = result.one_or_none()
        if row is None:
            return None
        return QuotaUsage(used=row.calls_used, limit=row.calls_limit)

    async def _ensure_record(self, user_id: int) -> None:
        await self.session.execute(self._insert_default(user_id))
        await self.session.commit()

    async def get_usage(self, user_id: int) -> QuotaUsage:
        usage = await self._read(user_id)
        if usage is None:
            logger.info("Creating missing quota record", user_id=user_id)
            await self._ensure_record(user_id)
            usage = await self._read(user_id)
        return usage

    async def check_limit(self, user_id: int) -> QuotaStatus:
        usage = await self.get_usage(user_id)
        return QuotaStatus(used=usage.used, limit=usage.limit, exceeded=usage.used >= usage.limit)

    async def snapshot(self, user_id: int) -> ApiUsage:
        usage = await self.get_usage(user_id)
        return ApiUsage.from_counts(usage.used, usage.limit)

    async def increment(self, user_id: int) -> None:
        """Add one call with a single atomic UPDATE."""
        stmt = (
            update(QuotaRecord)
            .where(QuotaRecord.user_id == user_id)
            .values(calls_used=QuotaRecord.calls_used + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            await self.session.execute(self._insert_default(user_id))
            await self.session.execute(stmt)
        await self.session.commit()

    async def reset(self, user_id: int) -> bool:
        """Set ``calls_used`` to 0, keeping the limit. Safe to repeat."""
        await self.session.execute(self._insert_default(user_id))
        # MySQL reports changed rather than matched rows, so rowcount is not checked
        await self.session.execute(
            update(QuotaRecord)
            .where(QuotaRecord.user_id == user_id)
            .values(calls_used=0)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        logger.info("Quota reset", user_id=user_id)
        return True
