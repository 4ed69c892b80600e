"""API request and response models."""

from .admin import (
    CreateAdminResponse,
    DashboardResponse,
    EndpointStat,
    ResetUsageResponse,
    UsageCounts,
    UserWithUsage,
)
from .auth import (
    AccountSummary,
    AdminLoginResponse,
    Credentials,
    LoginResponse,
    MeResponse,
    SignupResponse,
    UserSummary,
)
from .base import ApiUsage, BaseResponse, ErrorDetail, ErrorResponse, MessageResponse
from .tts import SynthesizeErrorResponse, SynthesizeRequest, SynthesizeSuccessResponse

__all__ = [
    "AccountSummary",
    "AdminLoginResponse",
    "ApiUsage",
    "BaseResponse",
    "CreateAdminResponse",
    "Credentials",
    "DashboardResponse",
    "EndpointStat",
    "ErrorDetail",
    "ErrorResponse",
    "LoginResponse",
    "MeResponse",
    "MessageResponse",
    "ResetUsageResponse",
    "SignupResponse",
    "SynthesizeErrorResponse",
    "SynthesizeRequest",
    "SynthesizeSuccessResponse",
    "UsageCounts",
    "UserSummary",
    "UserWithUsage",
]
