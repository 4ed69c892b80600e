"""Admin console operations: user management and usage analytics."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from audiobook_shared.db.models import DEFAULT_CALLS_LIMIT, QuotaRecord, UsageLogEntry, User
from audiobook_shared.logging import get_logger

from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..models.admin import EndpointStat, UserWithUsage
from .credential_store import CredentialStore, PasswordHasher, register_account
from .quota_ledger import QuotaLedger, QuotaUsage

logger = get_logger(__name__)

NEVER_CALLED = "Never"


def format_timestamp(value: datetime | None, timezone_name: str) -> str:
    """Render a stored UTC timestamp like ``Oct 18, 2026, 03:04:05 PM PDT``."""
    if value is None:
        return NEVER_CALLED
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(ZoneInfo(timezone_name))
    return f"{local:%b} {local.day}, {local:%Y}, {local:%I:%M:%S %p} {local:%Z}"


class AdminService:
    """Operations behind the admin dashboard.

    Guards run before any write: an admin can neither delete itself nor
    another admin.
    """

    def __init__(
        self,
        session: AsyncSession,
        default_limit: int = DEFAULT_CALLS_LIMIT,
        display_timezone: str = "America/Los_Angeles",
    ):
        self.session = session
        self.default_limit = default_limit
        self.display_timezone = display_timezone
        self.credentials = CredentialStore(session, default_limit=default_limit)
        self.ledger = QuotaLedger(session, default_limit=default_limit)

    async def list_users_with_usage(self) -> list[UserWithUsage]:
        query = (
            select(
                User.id,
                User.email,
                User.is_admin,
                User.account_status,
                User.created_at,
                User.last_login,
                func.coalesce(QuotaRecord.calls_used, 0).label("api_calls_used"),
                func.coalesce(QuotaRecord.calls_limit, self.default_limit).label("api_calls_limit"),
            )
            .outerjoin(QuotaRecord, QuotaRecord.user_id == User.id)
            .order_by(User.id)
        )
        result = await self.session.execute(query)
        return [
            UserWithUsage(
                user_id=row.id,
                email=row.email,
                is_admin=row.is_admin,
                account_status=row.account_status,
                created_at=row.created_at,
                last_login=row.last_login,
                api_calls_used=row.api_calls_used,
                api_calls_limit=row.api_calls_limit,
            )
            for row in result
        ]

    async def _get_user(self, user_id: int) -> User:
        user = await self.credentials.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    async def delete_user(self, target_id: int, requesting_admin_id: int) -> None:
        if target_id == requesting_admin_id:
            raise ValidationError("You cannot delete your own account", code="CANNOT_DELETE_SELF")

        target = await self._get_user(target_id)
        if target.is_admin:
            raise AuthorizationError("Admin users cannot be deleted", code="CANNOT_DELETE_ADMIN")

        if not await self.credentials.delete_user(target_id):
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        logger.info("Admin deleted user", user_id=target_id, admin_id=requesting_admin_id)

    async def create_admin(
        self,
        hasher: PasswordHasher,
        email: str | None,
        password: str | None,
    ) -> int:
        """Register an admin account with the same checks as signup."""
        return await register_account(self.credentials, hasher, email, password, is_admin=True)

    async def reset_usage(self, target_id: int) -> QuotaUsage:
        await self._get_user(target_id)
        await self.ledger.reset(target_id)
        return await self.ledger.get_usage(target_id)

    async def endpoint_statistics(self) -> list[EndpointStat]:
        request_count = func.count(UsageLogEntry.id).label("request_count")
        query = (
            select(
                UsageLogEntry.method,
                UsageLogEntry.endpoint,
                request_count,
                func.max(UsageLogEntry.timestamp).label("last_called"),
            )
            .group_by(UsageLogEntry.method, UsageLogEntry.endpoint)
            .order_by(desc(request_count), UsageLogEntry.endpoint, UsageLogEntry.method)
        )
        result = await self.session.execute(query)
        return [
            EndpointStat(
                method=row.method,
                endpoint=row.endpoint,
                request_count=row.request_count,
                last_called=row.last_called,
                last_called_formatted=format_timestamp(row.last_called, self.display_timezone),
            )
            for row in result
        ]
