"""Signup, login and session routes for regular users."""

from fastapi import APIRouter, Depends, Response

from audiobook_shared.db.models import User
from audiobook_shared.logging import get_logger

from ..dependencies import (
    get_credential_store,
    get_password_hasher,
    get_quota_ledger,
    get_token_service,
    require_user,
)
from ..errors import AuthenticationError, ValidationError
from ..models import (
    Credentials,
    LoginResponse,
    MeResponse,
    MessageResponse,
    SignupResponse,
    UserSummary,
)
from ..services import (
    CredentialStore,
    PasswordHasher,
    QuotaLedger,
    TokenService,
    normalize_email,
    register_account,
)
from ..services.credential_store import FIELDS_REQUIRED

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup", response_model=SignupResponse, summary="Create Account")
async def signup(
    response: Response,
    credentials: Credentials | None = None,
    store: CredentialStore = Depends(get_credential_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> SignupResponse:
    """Register a user with a zeroed quota and sign them in."""
    credentials = credentials or Credentials()
    user_id = await register_account(store, hasher, credentials.email, credentials.password)

    tokens.set_token_cookie(response, tokens.issue(user_id, normalize_email(credentials.email)))
    logger.info("User signed up", user_id=user_id)
    return SignupResponse(message="User registered successfully", user_id=user_id)


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    summary="Log In",
)
async def login(
    response: Response,
    credentials: Credentials | None = None,
    store: CredentialStore = Depends(get_credential_store),
    ledger: QuotaLedger = Depends(get_quota_ledger),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> LoginResponse:
    """Check credentials and set the session cookie."""
    credentials = credentials or Credentials()
    if not credentials.email or not credentials.password:
        raise ValidationError(FIELDS_REQUIRED)

    user = await store.find_by_email(credentials.email)
    if user is None or not await hasher.verify(credentials.password, user.password_hash):
        logger.info("Login failed")
        raise AuthenticationError()

    await store.update_last_login(user.id)
    usage = await ledger.get_usage(user.id)

    tokens.set_token_cookie(response, tokens.issue(user.id, user.email))
    logger.info("User logged in", user_id=user.id)
    return LoginResponse(
        message="Login successful",
        user=UserSummary(
            user_id=user.id,
            email=user.email,
            api_calls_used=usage.used,
            api_calls_limit=usage.limit,
        ),
    )


@router.get("/me", response_model=MeResponse, summary="Current User")
async def me(
    user: User = Depends(require_user),
    ledger: QuotaLedger = Depends(get_quota_ledger),
) -> MeResponse:
    usage = await ledger.snapshot(user.id)
    return MeResponse(
        user=UserSummary(
            user_id=user.id,
            email=user.email,
            api_calls_used=usage.used,
            api_calls_limit=usage.limit,
            api_limit_exceeded=usage.limit_exceeded,
        )
    )


@router.post("/logout", response_model=MessageResponse, summary="Log Out")
async def logout(
    response: Response,
    tokens: TokenService = Depends(get_token_service),
) -> MessageResponse:
    tokens.clear_token_cookie(response)
    return MessageResponse(message="Logged out successfully")
