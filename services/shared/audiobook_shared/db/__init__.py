"""Shared database module."""

from .connection import (
    DatabaseConnection,
    build_engine,
    is_sqlite_url,
)
from .models import (
    Base,
    Language,
    QuotaRecord,
    TimestampMixin,
    UsageLogEntry,
    User,
)
from .seed import SUPPORTED_LANGUAGES, seed_languages

__all__ = [
    "SUPPORTED_LANGUAGES",
    "Base",
    "DatabaseConnection",
    "Language",
    "QuotaRecord",
    "TimestampMixin",
    "UsageLogEntry",
    "User",
    "build_engine",
    "is_sqlite_url",
    "seed_languages",
]
