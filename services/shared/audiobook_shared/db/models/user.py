"""User SQLAlchemy model for authentication."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

ACCOUNT_STATUS_ACTIVE = "active"
ACCOUNT_STATUS_SUSPENDED = "suspended"


class User(Base, TimestampMixin):
    """Registered account, either a regular user or an admin."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )
    account_status: Mapped[str] = mapped_column(
        String(20),
        default=ACCOUNT_STATUS_ACTIVE,
        server_default=ACCOUNT_STATUS_ACTIVE,
        nullable=False,
        comment="Account status: 'active' or 'suspended'",
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
