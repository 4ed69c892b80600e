"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_fixed

from audiobook_shared.config import DEFAULT_JWT_SECRET, Settings, get_settings
from audiobook_shared.db import DatabaseConnection, seed_languages
from audiobook_shared.logging import configure_logging, get_logger
from audiobook_shared.tts import TTSClient

from .errors import AppError
from .middleware import CORRELATION_ID_HEADER, CorrelationIdMiddleware, get_correlation_id
from .models import ErrorDetail, ErrorResponse
from .routes import admin, auth, health, tts, usage
from .services import (
    CredentialStore,
    PasswordHasher,
    TokenService,
    UsageLogQueue,
    ensure_admin_account,
)

logger = get_logger(__name__)


async def initialize_database(app: FastAPI) -> None:
    """Create tables, then load reference data and the bootstrap admin."""
    settings: Settings = app.state.settings
    db: DatabaseConnection = app.state.db

    await db.ping()
    await db.create_tables()

    async with db.session() as session:
        await seed_languages(session)

    auth_settings = settings.auth
    if auth_settings.bootstrap_admin_email and auth_settings.bootstrap_admin_password:
        async with app.state.admin_db.session() as session:
            await ensure_admin_account(
                CredentialStore(session, default_limit=settings.quota.default_limit),
                app.state.password_hasher,
                auth_settings.bootstrap_admin_email,
                auth_settings.bootstrap_admin_password,
            )


async def _initialize_with_retries(app: FastAPI) -> bool:
    db_settings = app.state.settings.database

    def log_retry(retry_state) -> None:
        logger.warning(
            "Database initialization failed, retrying",
            attempt=retry_state.attempt_number,
            max_attempts=db_settings.init_attempts,
            error=str(retry_state.outcome.exception()),
        )

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(db_settings.init_attempts),
            wait=wait_fixed(db_settings.init_retry_seconds),
            before_sleep=log_retry,
        ):
            with attempt:
                await initialize_database(app)
    except RetryError as exc:
        # Keep serving; health checks report the database as down
        logger.error(
            "Failed to initialize database",
            attempts=db_settings.init_attempts,
            error=str(exc.last_attempt.exception()),
        )
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    logger.info(
        "Starting gateway",
        environment=settings.environment,
        quota_enforcement=settings.quota.enforcement,
        tts_base_url=settings.tts.base_url,
    )
    if settings.is_production and settings.auth.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("AUTH_JWT_SECRET is the built-in default; set a real secret")

    app.state.db_initialized = await _initialize_with_retries(app)
    if app.state.db_initialized:
        logger.info("Database ready")
    app.state.usage_log_queue.start()

    yield

    logger.info("Shutting down gateway", pending_usage_events=app.state.usage_log_queue.pending)
    await app.state.usage_log_queue.stop()
    await app.state.admin_db.close()
    await app.state.db.close()


def _database(settings: Settings, url: str) -> DatabaseConnection:
    return DatabaseConnection(
        url=url,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        echo=settings.database.echo,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the gateway application.

    Args:
        settings: Settings to use instead of the environment-derived ones.
    """
    settings = settings or get_settings()

    configure_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        service_name=settings.service_name,
        service_version=settings.service_version,
    )

    app = FastAPI(
        title="Audiobook TTS Gateway",
        description="Authenticated, quota-gated access to text-to-speech synthesis",
        version=settings.service_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        openapi_url="/openapi.json" if settings.api.debug else None,
        lifespan=lifespan,
    )

    # Shared resources; request dependencies read these from app.state
    app.state.settings = settings
    app.state.db_initialized = False
    app.state.db = _database(settings, settings.database.url)
    app.state.admin_db = _database(settings, settings.database.effective_admin_url)
    app.state.token_service = TokenService(settings.auth, secure_cookies=settings.is_production)
    app.state.password_hasher = PasswordHasher(rounds=settings.auth.bcrypt_rounds)
    app.state.tts_client = TTSClient(settings.tts)
    app.state.usage_log_queue = UsageLogQueue(
        app.state.db,
        maxsize=settings.usage_log.queue_size,
        drain_timeout=settings.usage_log.drain_timeout_seconds,
    )

    # Last added runs first: correlation ids are assigned before CORS handling
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix=settings.api.prefix)
    app.include_router(tts.router, prefix=settings.api.prefix)
    if not settings.is_production:
        app.include_router(usage.router, prefix=settings.api.prefix)
    app.include_router(admin.router)

    return app


def _error_response(
    request: Request,
    status_code: int,
    content: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    headers = dict(headers or {})
    correlation_id = get_correlation_id(request)
    if correlation_id:
        headers[CORRELATION_ID_HEADER] = correlation_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(
        request,
        exc.status_code,
        exc.to_content(get_correlation_id(request)),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (404, 405) in the ``{success: false}`` envelope."""
    error = ErrorResponse(
        message=str(exc.detail),
        correlation_id=get_correlation_id(request),
    )
    return _error_response(request, exc.status_code, error.to_content(), exc.headers)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed request bodies are a 400 with one detail per offending field."""
    details = [
        ErrorDetail(
            field=".".join(str(part) for part in error["loc"]),
            message=error["msg"],
            type=error["type"],
        )
        for error in exc.errors()
    ]
    error = ErrorResponse(
        message="Validation Error",
        code="VALIDATION_ERROR",
        correlation_id=get_correlation_id(request),
        details=details,
    )
    return _error_response(request, 400, error.to_content())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", path=request.url.path, method=request.method)

    content = ErrorResponse(
        message="Internal server error",
        correlation_id=get_correlation_id(request),
    ).to_content()
    if request.app.state.settings.api.debug:
        content["error"] = f"{type(exc).__name__}: {exc}"
    return _error_response(request, 500, content)


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "audiobook_api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.is_development and settings.api.debug,
    )


app = create_app()
