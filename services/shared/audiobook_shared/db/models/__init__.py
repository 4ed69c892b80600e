"""SQLAlchemy database models for the audiobook gateway."""

from .base import Base, TimestampMixin, utcnow
from .language import Language
from .quota_record import DEFAULT_CALLS_LIMIT, QuotaRecord
from .usage_log_entry import UsageLogEntry
from .user import ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_SUSPENDED, User

__all__ = [
    "ACCOUNT_STATUS_ACTIVE",
    "ACCOUNT_STATUS_SUSPENDED",
    "DEFAULT_CALLS_LIMIT",
    "Base",
    "Language",
    "QuotaRecord",
    "TimestampMixin",
    "UsageLogEntry",
    "User",
    "utcnow",
]
