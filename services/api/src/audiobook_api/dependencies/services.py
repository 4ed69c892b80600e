"""Request-scoped access to the database and services held on ``app.state``."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from audiobook_shared.config import Settings
from audiobook_shared.tts import TTSClient

from ..services import (
    AdminService,
    CredentialStore,
    PasswordHasher,
    QuotaLedger,
    TokenService,
    TTSProxyService,
    UsageLogQueue,
)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session from the user-traffic pool.

    Usage in FastAPI:
        @router.get("/items")
        async def get_items(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with request.app.state.db.session() as session:
        yield session


async def get_admin_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session from the admin pool."""
    async with request.app.state.admin_db.session() as session:
        yield session


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_usage_log_queue(request: Request) -> UsageLogQueue:
    return request.app.state.usage_log_queue


def get_tts_client(request: Request) -> TTSClient:
    return request.app.state.tts_client


def get_credential_store(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> CredentialStore:
    return CredentialStore(session, default_limit=settings.quota.default_limit)


def get_admin_credential_store(
    session: AsyncSession = Depends(get_admin_session),
    settings: Settings = Depends(get_app_settings),
) -> CredentialStore:
    return CredentialStore(session, default_limit=settings.quota.default_limit)


def get_quota_ledger(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> QuotaLedger:
    return QuotaLedger(session, default_limit=settings.quota.default_limit)


def get_tts_proxy(
    ledger: QuotaLedger = Depends(get_quota_ledger),
    client: TTSClient = Depends(get_tts_client),
    settings: Settings = Depends(get_app_settings),
) -> TTSProxyService:
    return TTSProxyService(ledger, client, enforcement=settings.quota.enforcement)


def get_admin_service(
    session: AsyncSession = Depends(get_admin_session),
    settings: Settings = Depends(get_app_settings),
) -> AdminService:
    return AdminService(
        session,
        default_limit=settings.quota.default_limit,
        display_timezone=settings.api.display_timezone,
    )
