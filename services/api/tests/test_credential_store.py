"""Tests for account persistence and password hashing."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from audiobook_api.errors import AppError, ValidationError
from audiobook_api.services import (
    CreateUserFailure,
    CredentialStore,
    PasswordHasher,
    ensure_admin_account,
    register_account,
)
from audiobook_shared.db.models import QuotaRecord, User

pytestmark = pytest.mark.integration


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def store(session) -> CredentialStore:
    return CredentialStore(session)


class TestPasswordHasher:
    """bcrypt hashing."""

    async def test_hash_and_verify(self, hasher):
        hashed = await hasher.hash("s3cret")

        assert hashed != "s3cret"
        assert hashed.startswith("$2")
        assert await hasher.verify("s3cret", hashed) is True
        assert await hasher.verify("wrong", hashed) is False

    async def test_cost_factor_is_applied(self):
        hashed = await PasswordHasher(rounds=10).hash("s3cret")

        assert hashed.split("$")[2] == "10"

    async def test_malformed_hash_never_matches(self, hasher):
        assert await hasher.verify("s3cret", "not-a-bcrypt-hash") is False


class TestCreate:
    """User and quota record are written together."""

    async def test_creates_user_with_zeroed_quota(self, store, session):
        result = await store.create("Reader@Example.com ", "hash")

        assert result.success is True
        quota = await session.get(QuotaRecord, result.user_id)
        assert quota.calls_used == 0
        assert quota.calls_limit == 20
        user = await store.find_by_id(result.user_id)
        assert user.email == "reader@example.com"
        assert user.is_admin is False

    async def test_custom_default_limit(self, session):
        result = await CredentialStore(session, default_limit=3).create("a@example.com", "hash")

        quota = await session.get(QuotaRecord, result.user_id)
        assert quota.calls_limit == 3

    async def test_duplicate_email(self, store, session):
        await store.create("dup@example.com", "hash")

        result = await store.create("DUP@example.com", "hash")

        assert result.success is False
        assert result.reason is CreateUserFailure.DUPLICATE_EMAIL
        count = await session.scalar(select(func.count(User.id)))
        assert count == 1

    async def test_database_error_rolls_back(self, store, session, monkeypatch):
        original_add = session.add

        def failing_add(instance):
            if isinstance(instance, QuotaRecord):
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            original_add(instance)

        monkeypatch.setattr(session, "add", failing_add)

        result = await store.create("broken@example.com", "hash")

        assert result.success is False
        assert result.reason is CreateUserFailure.DATABASE_ERROR
        monkeypatch.undo()
        assert await store.find_by_email("broken@example.com") is None


class TestLookupsAndUpdates:
    async def test_find_by_email_is_case_insensitive(self, store):
        created = await store.create("case@example.com", "hash")

        found = await store.find_by_email("  CASE@example.com")

        assert found.id == created.user_id

    async def test_find_missing(self, store):
        assert await store.find_by_email("nobody@example.com") is None
        assert await store.find_by_id(999) is None

    async def test_update_last_login(self, store, session):
        created = await store.create("login@example.com", "hash")

        await store.update_last_login(created.user_id)

        last_login = await session.scalar(
            select(User.last_login).where(User.id == created.user_id)
        )
        assert last_login is not None

    async def test_update_last_login_swallows_errors(self, store, session, monkeypatch):
        async def broken_execute(*args, **kwargs):
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "execute", broken_execute)

        await store.update_last_login(1)

    async def test_delete_user_cascades_to_quota(self, store, session):
        created = await store.create("gone@example.com", "hash")

        assert await store.delete_user(created.user_id) is True
        assert await session.scalar(select(func.count()).select_from(QuotaRecord)) == 0
        assert await store.delete_user(created.user_id) is False


class TestRegisterAccount:
    """Validation shared by signup and admin creation."""

    @pytest.mark.parametrize(
        "email,password",
        [(None, "pw"), ("a@example.com", None), ("", "pw"), ("   ", "pw"), ("a@example.com", "")],
    )
    async def test_missing_fields(self, store, hasher, email, password):
        with pytest.raises(ValidationError) as exc_info:
            await register_account(store, hasher, email, password)

        assert exc_info.value.message == "Email and password are required"
        assert exc_info.value.status_code == 400

    async def test_duplicate_email(self, store, hasher):
        await register_account(store, hasher, "taken@example.com", "pw")

        with pytest.raises(ValidationError) as exc_info:
            await register_account(store, hasher, "taken@example.com", "pw")

        assert exc_info.value.message == "Email is already registered"
        assert exc_info.value.code == "DUPLICATE_EMAIL"

    async def test_database_error(self, store, hasher, monkeypatch):
        async def failing_create(*args, **kwargs):
            from audiobook_api.services import CreateUserResult

            return CreateUserResult(success=False, reason=CreateUserFailure.DATABASE_ERROR)

        monkeypatch.setattr(store, "create", failing_create)

        with pytest.raises(AppError) as exc_info:
            await register_account(store, hasher, "a@example.com", "pw")

        assert exc_info.value.status_code == 500

    async def test_stores_hash_not_password(self, store, hasher):
        user_id = await register_account(
            store, hasher, "hash@example.com", "plaintext", is_admin=True
        )

        user = await store.find_by_id(user_id)
        assert user.password_hash != "plaintext"
        assert user.is_admin is True
        assert await hasher.verify("plaintext", user.password_hash)


class TestEnsureAdminAccount:
    async def test_creates_missing_admin(self, store, hasher):
        assert await ensure_admin_account(store, hasher, "root@example.com", "pw") is True

        admin = await store.find_by_email("root@example.com")
        assert admin.is_admin is True

    async def test_existing_account_left_alone(self, store, hasher):
        await store.create("root@example.com", "hash")

        assert await ensure_admin_account(store, hasher, "root@example.com", "pw") is False

        user = await store.find_by_email("root@example.com")
        assert user.is_admin is False
        assert user.password_hash == "hash"
