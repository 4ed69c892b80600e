"""Admin console routes."""

from fastapi import APIRouter, Depends, Response

from audiobook_shared.db.models import User
from audiobook_shared.logging import get_logger

from ..dependencies import (
    get_admin_credential_store,
    get_admin_service,
    get_password_hasher,
    get_token_service,
    require_admin,
)
from ..errors import AuthenticationError, ValidationError
from ..models import (
    AccountSummary,
    AdminLoginResponse,
    CreateAdminResponse,
    Credentials,
    DashboardResponse,
    MessageResponse,
    ResetUsageResponse,
    UsageCounts,
)
from ..services import (
    AdminService,
    CredentialStore,
    PasswordHasher,
    TokenService,
)
from ..services.credential_store import FIELDS_REQUIRED

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])


def parse_user_id(value: str) -> int:
    """Parse a positive integer user id from the path."""
    if not value.isdigit() or int(value) <= 0:
        raise ValidationError("Invalid user ID", code="INVALID_USER_ID")
    return int(value)


# --- Informational ---


@router.get("", response_model=MessageResponse, summary="Admin API Root")
async def admin_root() -> MessageResponse:
    return MessageResponse(message="Admin API root. POST to /admin/login to begin.")


@router.get("/login", response_model=MessageResponse, summary="Admin Login Info")
async def admin_login_info() -> MessageResponse:
    return MessageResponse(message="Admin login endpoint. POST credentials to authenticate.")


@router.get("/add-admin", response_model=MessageResponse, summary="Add Admin Info")
async def add_admin_info() -> MessageResponse:
    return MessageResponse(
        message="Send POST /admin/add-admin with email and password to create an admin."
    )


# --- Session ---


@router.post("/login", response_model=AdminLoginResponse, summary="Admin Login")
async def admin_login(
    response: Response,
    credentials: Credentials | None = None,
    store: CredentialStore = Depends(get_admin_credential_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> AdminLoginResponse:
    """Authenticate an admin account; regular users are rejected."""
    credentials = credentials or Credentials()
    if not credentials.email or not credentials.password:
        raise ValidationError(FIELDS_REQUIRED)

    user = await store.find_by_email(credentials.email)
    if user is None or not user.is_admin:
        raise AuthenticationError()
    if not await hasher.verify(credentials.password, user.password_hash):
        raise AuthenticationError()

    await store.update_last_login(user.id)
    tokens.set_token_cookie(response, tokens.issue(user.id, user.email))
    logger.info("Admin logged in", admin_id=user.id)
    return AdminLoginResponse(
        message="Login successful",
        user=AccountSummary(user_id=user.id, email=user.email),
    )


@router.get("/logout", response_model=MessageResponse, summary="Admin Logout")
async def admin_logout(
    response: Response,
    tokens: TokenService = Depends(get_token_service),
) -> MessageResponse:
    tokens.clear_token_cookie(response)
    return MessageResponse(message="Logged out successfully")


# --- Management ---


@router.post("/add-admin", response_model=CreateAdminResponse, summary="Create Admin")
async def add_admin(
    credentials: Credentials | None = None,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> CreateAdminResponse:
    """Create another admin account (admin only)."""
    credentials = credentials or Credentials()
    user_id = await service.create_admin(hasher, credentials.email, credentials.password)
    logger.info("Admin created", user_id=user_id, created_by=admin.id)
    return CreateAdminResponse(message="Admin registered successfully", user_id=user_id)


@router.get("/dashboard", response_model=DashboardResponse, summary="Admin Dashboard")
async def dashboard(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> DashboardResponse:
    """Users with their usage, plus request counts per endpoint."""
    return DashboardResponse(
        admin=AccountSummary(user_id=admin.id, email=admin.email),
        users=await service.list_users_with_usage(),
        endpoint_stats=await service.endpoint_statistics(),
    )


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete User")
async def delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> MessageResponse:
    """Delete a regular user along with their quota and usage history."""
    await service.delete_user(parse_user_id(user_id), requesting_admin_id=admin.id)
    return MessageResponse(message="User deleted successfully")


@router.patch(
    "/users/{user_id}/reset-usage",
    response_model=ResetUsageResponse,
    summary="Reset User Usage",
)
async def reset_usage(
    user_id: str,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> ResetUsageResponse:
    target_id = parse_user_id(user_id)
    usage = await service.reset_usage(target_id)
    logger.info("Admin reset usage", user_id=target_id, admin_id=admin.id)
    return ResetUsageResponse(
        message="API usage reset successfully",
        api_usage=UsageCounts(used=usage.used, limit=usage.limit),
    )
