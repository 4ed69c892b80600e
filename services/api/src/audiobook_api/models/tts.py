"""Pydantic models for the synthesis endpoint."""

from pydantic import Field

from .base import ApiUsage, BaseResponse


class SynthesizeRequest(BaseResponse):
    """Synthesis request body.

    ``text`` and ``language`` are checked by the handler rather than the
    schema so that an empty value is answered with a quota snapshot attached.
    """

    text: str | None = Field(default=None, description="Text to synthesize")
    language: str | None = Field(default="en", description="Language code, e.g. 'en'")
    speaker_id: str = Field(default="default", description="Voice identifier")
    speaker_wav_base64: str | None = Field(
        default=None, description="Reference voice sample, base64-encoded WAV"
    )
    speaker_wav_url: str | None = Field(default=None, description="URL of a reference voice sample")


class SynthesizeSuccessResponse(BaseResponse):
    success: bool = True
    audio_base64: str = Field(description="Synthesized audio, base64-encoded")
    sample_rate: int | None = Field(default=None, description="Audio sample rate in Hz")
    api_usage: ApiUsage = Field(alias="apiUsage")
    api_limit_exceeded: bool = Field(alias="apiLimitExceeded")
    warning: str | None = None


class SynthesizeErrorResponse(BaseResponse):
    success: bool = False
    message: str
    code: str | None = None
    api_usage: ApiUsage | None = Field(default=None, alias="apiUsage")
    api_limit_exceeded: bool | None = Field(default=None, alias="apiLimitExceeded")
    warning: str | None = None
