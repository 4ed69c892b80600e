"""FastAPI dependencies."""

from .auth import authenticate_admin, authenticate_user, require_admin, require_user
from .services import (
    get_admin_credential_store,
    get_admin_service,
    get_admin_session,
    get_app_settings,
    get_credential_store,
    get_password_hasher,
    get_quota_ledger,
    get_session,
    get_token_service,
    get_tts_client,
    get_tts_proxy,
    get_usage_log_queue,
)

__all__ = [
    "authenticate_admin",
    "authenticate_user",
    "get_admin_credential_store",
    "get_admin_service",
    "get_admin_session",
    "get_app_settings",
    "get_credential_store",
    "get_password_hasher",
    "get_quota_ledger",
    "get_session",
    "get_token_service",
    "get_tts_client",
    "get_tts_proxy",
    "get_usage_log_queue",
    "require_admin",
    "require_user",
]
