"""Pydantic models for the admin console."""

from datetime import datetime

from pydantic import Field

from .auth import AccountSummary
from .base import BaseResponse


class UserWithUsage(BaseResponse):
    """One row of the dashboard user table."""

    user_id: int
    email: str
    is_admin: bool
    account_status: str
    created_at: datetime
    last_login: datetime | None = None
    api_calls_used: int
    api_calls_limit: int


class EndpointStat(BaseResponse):
    """Request count per (method, endpoint)."""

    method: str
    endpoint: str
    request_count: int
    last_called: datetime | None = None
    last_called_formatted: str = Field(description="last_called in the display timezone, or 'Never'")


class DashboardResponse(BaseResponse):
    success: bool = True
    admin: AccountSummary
    users: list[UserWithUsage]
    endpoint_stats: list[EndpointStat] = Field(alias="endpointStats")


class UsageCounts(BaseResponse):
    used: int
    limit: int


class ResetUsageResponse(BaseResponse):
    success: bool = True
    message: str
    api_usage: UsageCounts = Field(alias="apiUsage")


class CreateAdminResponse(BaseResponse):
    success: bool = True
    message: str
    user_id: int = Field(alias="userId")
