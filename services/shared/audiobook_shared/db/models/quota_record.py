"""Per-user API call counter and limit."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow

DEFAULT_CALLS_LIMIT = 20


class QuotaRecord(Base):
    """One row per user; removed together with the user."""

    __tablename__ = "user_api_quota"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    calls_used: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    calls_limit: Mapped[int] = mapped_column(
        Integer,
        default=DEFAULT_CALLS_LIMIT,
        server_default=str(DEFAULT_CALLS_LIMIT),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
