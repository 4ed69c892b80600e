"""Response envelopes shared by every route."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseResponse(BaseModel):
    """Accepts snake_case names on input; aliased fields serialize in camelCase."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MessageResponse(BaseResponse):
    success: bool = True
    message: str


class ErrorDetail(BaseModel):
    """One offending request field."""

    field: str | None = None
    message: str
    type: str | None = None


class ErrorResponse(BaseModel):
    """``{success: false, message}`` plus whichever optional keys apply."""

    success: bool = False
    message: str
    code: str | None = Field(default=None, description="Machine-readable error code")
    correlation_id: str | None = None
    details: list[ErrorDetail] | None = None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ApiUsage(BaseResponse):
    """Quota snapshot returned alongside user-facing responses."""

    used: int = Field(ge=0)
    limit: int = Field(ge=0)
    remaining: int = Field(ge=0, description="max(limit - used, 0)")
    limit_exceeded: bool = Field(alias="limitExceeded", description="used >= limit")

    @classmethod
    def from_counts(cls, used: int, limit: int) -> "ApiUsage":
        return cls(
            used=used,
            limit=limit,
            remaining=max(limit - used, 0),
            limit_exceeded=used >= limit,
        )
