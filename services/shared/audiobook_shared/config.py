"""Environment-driven settings for the gateway.

Each group reads its own prefix (`DATABASE_URL`, `AUTH_JWT_SECRET`, `TTS_BASE_URL`, ...);
the top-level fields read unprefixed names such as `ENVIRONMENT`.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Two connection URLs are supported so that admin operations can run with
    separately credentialed connections:
    1. DATABASE_URL - Connection used for regular user traffic
    2. DATABASE_ADMIN_URL - Connection used for admin operations (falls back to DATABASE_URL)
    """

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="sqlite+aiosqlite:///./audiobook.db",
        description="Database connection URL for user traffic",
    )
    admin_url: str = Field(
        default="",
        description="Database connection URL for admin operations",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connections kept open per pool",
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Extra connections a pool may open under load",
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement",
    )
    init_attempts: int = Field(
        default=30,
        ge=1,
        description="Startup attempts to reach the database before serving degraded",
    )
    init_retry_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Delay between startup attempts",
    )

    @property
    def effective_admin_url(self) -> str:
        """Get the admin connection URL, falling back to the user URL."""
        return self.admin_url or self.url


class AuthSettings(BaseSettings):
    """Session token and password hashing settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    jwt_secret: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to sign session tokens",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    token_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60,
        ge=1,
        description="Session token lifetime in seconds",
    )
    cookie_name: str = Field(
        default="token",
        description="Name of the cookie carrying the session token",
    )
    bcrypt_rounds: int = Field(
        default=10,
        ge=4,
        le=31,
        description="bcrypt cost factor",
    )
    bootstrap_admin_email: str = Field(
        default="",
        description="Email of an admin account created at startup if missing",
    )
    bootstrap_admin_password: str = Field(
        default="",
        description="Password of the bootstrap admin account",
    )


class TTSSettings(BaseSettings):
    """Upstream text-to-speech service settings."""

    model_config = SettingsConfigDict(env_prefix="TTS_")

    base_url: str = Field(
        default="http://localhost:8001",
        description="Base URL of the synthesis service",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single synthesis call",
    )


class QuotaSettings(BaseSettings):
    """API quota settings."""

    model_config = SettingsConfigDict(env_prefix="QUOTA_")

    default_limit: int = Field(
        default=20,
        ge=0,
        description="Calls allowed for a newly created quota record",
    )
    enforcement: Literal["soft", "hard"] = Field(
        default="soft",
        description="soft: warn past the limit; hard: reject with 429",
    )


class UsageLogSettings(BaseSettings):
    """Usage log queue settings."""

    model_config = SettingsConfigDict(env_prefix="USAGE_LOG_")

    queue_size: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of pending usage log events",
    )
    drain_timeout_seconds: float = Field(
        default=5.0,
        ge=0,
        description="How long shutdown waits for pending events to be written",
    )
    default_language: str = Field(
        default="en",
        description="Language code recorded for non-synthesis requests",
    )


class LoggingSettings(BaseSettings):
    """structlog output settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level",
    )
    json_format: bool = Field(
        default=True,
        description="JSON lines instead of the coloured console renderer",
    )


class APISettings(BaseSettings):
    """HTTP server and routing settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(
        default="0.0.0.0",
        description="Interface uvicorn binds to",
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port uvicorn listens on",
    )
    debug: bool = Field(
        default=False,
        description="Expose /docs and include exception details in 500 responses",
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed to send credentialed cross-site requests",
    )
    prefix: str = Field(
        default="/api/v1",
        description="Path prefix for user-facing routes",
    )
    display_timezone: str = Field(
        default="America/Los_Angeles",
        description="Timezone used for human-readable timestamps in admin views",
    )


class Settings(BaseSettings):
    """All gateway settings, grouped by concern."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
    )

    service_name: str = Field(
        default="audiobook-api",
        description="Value of the `service` key on log events",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Reported by /health and on log events",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="production enables secure cookies and hides /usage/increment",
    )

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    tts: TTSSettings = Field(default_factory=TTSSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    usage_log: UsageLogSettings = Field(default_factory=UsageLogSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Settings read from the environment once per process."""
    return Settings()


def refresh_settings() -> Settings:
    """Re-read the environment, e.g. after a test changed it."""
    get_settings.cache_clear()
    return get_settings()
