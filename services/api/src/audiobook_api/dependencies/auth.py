"""Authentication dependencies for protecting API routes."""

from __future__ import annotations

from fastapi import BackgroundTasks, Depends, Request

from audiobook_shared.config import Settings
from audiobook_shared.db.models import User
from audiobook_shared.logging import get_logger

from ..errors import AuthenticationError
from ..services import CredentialStore, TokenService, UsageEvent, UsageLogQueue
from .services import (
    get_admin_credential_store,
    get_app_settings,
    get_credential_store,
    get_token_service,
    get_usage_log_queue,
)

logger = get_logger(__name__)


async def _resolve_user(
    request: Request,
    tokens: TokenService,
    store: CredentialStore,
) -> User:
    claims = tokens.verify(tokens.extract_token(request))
    if claims is None:
        raise AuthenticationError()

    user = await store.find_by_id(claims.user_id)
    if user is None:
        logger.info("Token refers to a missing user", user_id=claims.user_id)
        raise AuthenticationError()
    return user


def audited_path(request: Request, api_prefix: str) -> str:
    """Route template of the current request, relative to the API prefix."""
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    if api_prefix and path.startswith(api_prefix + "/"):
        path = path[len(api_prefix):]
    return path


def schedule_audit(
    request: Request,
    background_tasks: BackgroundTasks,
    queue: UsageLogQueue,
    settings: Settings,
    user_id: int,
) -> None:
    """Queue a usage log entry once the response has been sent.

    Background tasks are discarded when the route raises, so only successful
    requests are recorded.
    """
    background_tasks.add_task(
        queue.submit,
        UsageEvent(
            user_id=user_id,
            endpoint=audited_path(request, settings.api.prefix),
            method=request.method,
            language_code=settings.usage_log.default_language,
        ),
    )


async def authenticate_user(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    store: CredentialStore = Depends(get_credential_store),
) -> User:
    """Resolve the caller from the bearer token or session cookie.

    Raises:
        AuthenticationError: No token, invalid token or unknown user.
    """
    user = await _resolve_user(request, tokens, store)
    request.state.user = user
    return user


async def require_user(
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(authenticate_user),
    queue: UsageLogQueue = Depends(get_usage_log_queue),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """Like :func:`authenticate_user`, and records the call in the usage log.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(user: User = Depends(require_user)):
            print(user.id)
    """
    schedule_audit(request, background_tasks, queue, settings, user.id)
    return user


async def authenticate_admin(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    store: CredentialStore = Depends(get_admin_credential_store),
) -> User:
    """Resolve the caller and require an admin account."""
    user = await _resolve_user(request, tokens, store)
    if not user.is_admin:
        logger.info("Non-admin rejected from admin route", user_id=user.id)
        raise AuthenticationError()
    request.state.admin = user
    return user


async def require_admin(
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(authenticate_admin),
    queue: UsageLogQueue = Depends(get_usage_log_queue),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """Admin guard that also records the call in the usage log."""
    schedule_audit(request, background_tasks, queue, settings, admin.id)
    return admin
