"""API services."""

from .admin_service import AdminService, format_timestamp
from .credential_store import (
    CreateUserFailure,
    CreateUserResult,
    CredentialStore,
    PasswordHasher,
    ensure_admin_account,
    normalize_email,
    register_account,
)
from .quota_ledger import QuotaLedger, QuotaStatus, QuotaUsage
from .token_service import TokenClaims, TokenService
from .tts_proxy import SynthesisOutcome, TTSProxyService
from .usage_logger import UsageEvent, UsageLogQueue, UsageLogService

__all__ = [
    "AdminService",
    "CreateUserFailure",
    "CreateUserResult",
    "CredentialStore",
    "PasswordHasher",
    "QuotaLedger",
    "QuotaStatus",
    "QuotaUsage",
    "SynthesisOutcome",
    "TTSProxyService",
    "TokenClaims",
    "TokenService",
    "UsageEvent",
    "UsageLogQueue",
    "UsageLogService",
    "ensure_admin_account",
    "format_timestamp",
    "normalize_email",
    "register_account",
]
