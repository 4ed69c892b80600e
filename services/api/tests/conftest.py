"""Pytest configuration and fixtures for API tests."""

from collections.abc import AsyncGenerator, Callable, Generator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import select

from audiobook_api.main import create_app
from audiobook_shared.config import (
    AuthSettings,
    DatabaseSettings,
    LoggingSettings,
    Settings,
    TTSSettings,
)
from audiobook_shared.db import DatabaseConnection, seed_languages
from audiobook_shared.db.models import UsageLogEntry
from audiobook_shared.tts import TTSClient

API = "/api/v1"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password"
USER_PASSWORD = "reader-password"


# ============================================================================
# Upstream TTS Fake
# ============================================================================


@dataclass
class FakeTTSBackend:
    """Stands in for the synthesis service behind an httpx.MockTransport."""

    status_code: int = 200
    body: Any = field(
        default_factory=lambda: {"audio_base64": "UklGRiQAAABXQVZF", "sample_rate": 24000}
    )
    error: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=str(self.body))

    def fail_with(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self.body = body

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def tts_backend() -> FakeTTSBackend:
    return FakeTTSBackend()


@pytest.fixture
def tts_client(settings, tts_backend) -> TTSClient:
    return TTSClient(settings.tts, transport=httpx.MockTransport(tts_backend.handle))


# ============================================================================
# Settings and Database
# ============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"


@pytest.fixture
def settings(database_url) -> Settings:
    """Settings for a development build against a throwaway database."""
    return Settings(
        environment="development",
        database=DatabaseSettings(url=database_url),
        auth=AuthSettings(
            jwt_secret="test-secret",
            bcrypt_rounds=4,
            bootstrap_admin_email=ADMIN_EMAIL,
            bootstrap_admin_password=ADMIN_PASSWORD,
        ),
        tts=TTSSettings(base_url="http://tts.test", timeout_seconds=2.0),
        logging=LoggingSettings(level="WARNING", json_format=False),
    )


@pytest.fixture
async def db(database_url) -> AsyncGenerator[DatabaseConnection, None]:
    """Database connection with tables created and languages seeded."""
    connection = DatabaseConnection(url=database_url)
    await connection.create_tables()
    async with connection.session() as session:
        await seed_languages(session)
    yield connection
    await connection.close()


@pytest.fixture
async def session(db):
    async with db.session() as session:
        yield session


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def make_app(tts_client) -> Callable[[Settings], FastAPI]:
    """Build the real application with the fake TTS backend wired in."""

    def _make(app_settings: Settings) -> FastAPI:
        application = create_app(app_settings)
        application.state.tts_client = tts_client
        return application

    return _make


@pytest.fixture
def app(make_app, settings) -> FastAPI:
    return make_app(settings)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def drain_usage_log(client) -> Callable[[], None]:
    """Block until queued usage log events have been written."""

    def _drain() -> None:
        client.portal.call(client.app.state.usage_log_queue.join)

    return _drain


@pytest.fixture
def usage_log(client, drain_usage_log) -> Callable[[], list[UsageLogEntry]]:
    """Drain the queue and return every usage log row in insertion order."""

    async def _read() -> list[UsageLogEntry]:
        async with client.app.state.db.session() as session:
            result = await session.execute(select(UsageLogEntry).order_by(UsageLogEntry.id))
            return list(result.scalars())

    def _rows() -> list[UsageLogEntry]:
        drain_usage_log()
        return client.portal.call(_read)

    return _rows


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@dataclass
class Account:
    user_id: int
    email: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return bearer(self.token)


@pytest.fixture
def signup(client) -> Callable[..., Account]:
    """Create a user through the API and return its bearer credentials."""

    def _signup(email: str = "reader@example.com", password: str = USER_PASSWORD) -> Account:
        response = client.post(f"{API}/auth/signup", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        token = response.cookies["token"]
        client.cookies.clear()
        return Account(user_id=response.json()["userId"], email=email, token=token)

    return _signup


@pytest.fixture
def admin(client) -> Account:
    """The bootstrap admin, signed in."""
    response = client.post(
        "/admin/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    token = response.cookies["token"]
    client.cookies.clear()
    return Account(user_id=response.json()["user"]["userId"], email=ADMIN_EMAIL, token=token)


@pytest.fixture
def use_calls(client) -> Callable[[Account, int], None]:
    """Charge calls to an account without synthesizing."""

    def _use(account: Account, count: int) -> None:
        for _ in range(count):
            response = client.post(f"{API}/usage/increment", headers=account.headers)
            assert response.status_code == 200, response.text

    return _use
