"""Pydantic models for signup, login and session endpoints."""

from pydantic import Field

from .base import BaseResponse


class Credentials(BaseResponse):
    """Email and password submitted to signup and login endpoints.

    Both fields are optional at the schema level so that a missing value
    produces the same 400 message as an empty one.
    """

    email: str | None = Field(default=None, description="Account email")
    password: str | None = Field(default=None, description="Plaintext password")


class SignupResponse(BaseResponse):
    success: bool = True
    message: str
    user_id: int = Field(alias="userId")


class AccountSummary(BaseResponse):
    """Identity of the signed-in account."""

    user_id: int = Field(alias="userId")
    email: str


class UserSummary(AccountSummary):
    """Signed-in user with quota counters."""

    api_calls_used: int = Field(alias="apiCallsUsed")
    api_calls_limit: int = Field(alias="apiCallsLimit")
    api_limit_exceeded: bool | None = Field(default=None, alias="apiLimitExceeded")


class LoginResponse(BaseResponse):
    success: bool = True
    message: str
    user: UserSummary


class AdminLoginResponse(BaseResponse):
    success: bool = True
    message: str
    user: AccountSummary


class MeResponse(BaseResponse):
    success: bool = True
    user: UserSummary
