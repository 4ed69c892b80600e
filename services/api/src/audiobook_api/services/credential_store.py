"""Account persistence and password hashing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from passlib.context import CryptContext
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from audiobook_shared.db.models import DEFAULT_CALLS_LIMIT, QuotaRecord, User, utcnow
from audiobook_shared.logging import get_logger

from ..errors import AppError, ValidationError

logger = get_logger(__name__)

FIELDS_REQUIRED = "Email and password are required"
EMAIL_EXISTS = "Email is already registered"
SERVER_ERROR = "Internal server error"


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


class PasswordHasher:
    """bcrypt hashing, run off the event loop."""

    def __init__(self, rounds: int = 10) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    async def hash(self, plain: str) -> str:
        return await run_in_threadpool(self._context.hash, plain)

    async def verify(self, plain: str, hashed: str) -> bool:
        """Check ``plain`` against ``hashed``; unrecognised hashes never match."""
        try:
            return await run_in_threadpool(self._context.verify, plain, hashed)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be verified")
            return False


class CreateUserFailure(str, Enum):
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    DATABASE_ERROR = "DATABASE_ERROR"


@dataclass
class CreateUserResult:
    success: bool
    user_id: int | None = None
    reason: CreateUserFailure | None = None


class CredentialStore:
    """Creates, finds and deletes accounts.

    An account and its quota record are always written in one transaction.
    """

    def __init__(self, session: AsyncSession, default_limit: int = DEFAULT_CALLS_LIMIT):
        self.session = session
        self.default_limit = default_limit

    async def find_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def create(
        self,
        email: str,
        password_hash: str,
        is_admin: bool = False,
    ) -> CreateUserResult:
        """Insert a user and its zeroed quota record.

        Returns:
            CreateUserResult with the new id, or the failure reason.
        """
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            is_admin=is_admin,
        )
        try:
            self.session.add(user)
            await self.session.flush()
            self.session.add(
                QuotaRecord(user_id=user.id, calls_used=0, calls_limit=self.default_limit)
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info("Signup rejected, email already registered")
            return CreateUserResult(success=False, reason=CreateUserFailure.DUPLICATE_EMAIL)
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Failed to create user")
            return CreateUserResult(success=False, reason=CreateUserFailure.DATABASE_ERROR)

        logger.info("User created", user_id=user.id, is_admin=is_admin)
        return CreateUserResult(success=True, user_id=user.id)

    async def update_last_login(self, user_id: int) -> None:
        """Record a successful login. Failures are logged, never raised."""
        try:
            await self.session.execute(
                update(User)
                .where(User.id == user_id)
                .values(last_login=utcnow())
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.warning("Failed to update last login", user_id=user_id, exc_info=True)

    async def delete_user(self, user_id: int) -> bool:
        """Hard-delete a user; quota and usage log rows go with it."""
        result = await self.session.execute(delete(User).where(User.id == user_id))
        await self.session.commit()
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info("User deleted", user_id=user_id)
        return deleted


async def register_account(
    store: CredentialStore,
    hasher: PasswordHasher,
    email: str | None,
    password: str | None,
    is_admin: bool = False,
) -> int:
    """Validate credentials and create the account.

    Returns:
        The new user id.

    Raises:
        ValidationError: Missing fields or duplicate email.
        AppError: The account could not be written.
    """
    if not email or not email.strip() or not password:
        raise ValidationError(FIELDS_REQUIRED)

    if await store.find_by_email(email) is not None:
        raise ValidationError(EMAIL_EXISTS, code=CreateUserFailure.DUPLICATE_EMAIL.value)

    password_hash = await hasher.hash(password)
    result = await store.create(email, password_hash, is_admin=is_admin)
    if result.reason is CreateUserFailure.DUPLICATE_EMAIL:
        raise ValidationError(EMAIL_EXISTS, code=result.reason.value)
    if not result.success or result.user_id is None:
        raise AppError(SERVER_ERROR, code=CreateUserFailure.DATABASE_ERROR.value)
    return result.user_id


async def ensure_admin_account(
    store: CredentialStore,
    hasher: PasswordHasher,
    email: str,
    password: str,
) -> bool:
    """Create an admin account with ``email`` unless one already exists.

    Returns:
        True if an account was created.
    """
    existing = await store.find_by_email(email)
    if existing is not None:
        if not existing.is_admin:
            logger.warning("Bootstrap admin email belongs to a regular user", user_id=existing.id)
        return False

    result = await store.create(email, await hasher.hash(password), is_admin=True)
    if not result.success:
        logger.error("Failed to create bootstrap admin", reason=result.reason)
        return False
    logger.info("Bootstrap admin created", user_id=result.user_id)
    return True
