"""Quota-gated proxy to the synthesis service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from fastapi import status
from fastapi.responses import JSONResponse

from audiobook_shared.logging import get_logger
from audiobook_shared.tts import SynthesisRequest, TTSClient, TTSUpstreamError

from ..models.base import ApiUsage
from ..models.tts import SynthesizeErrorResponse, SynthesizeRequest, SynthesizeSuccessResponse
from .quota_ledger import QuotaLedger
from .usage_logger import UsageEvent

logger = get_logger(__name__)

SYNTHESIZE_ENDPOINT = "/tts/synthesize"
LIMIT_EXCEEDED_WARNING = "API call limit exceeded"
TEXT_REQUIRED = "Text is required"
LANGUAGE_REQUIRED = "Language is required"


@dataclass
class SynthesisOutcome:
    """Status and body of a synthesis attempt.

    ``usage_event`` is set only after a successful upstream call, and is
    meant to be queued once the response has been sent.
    """

    status_code: int
    body: SynthesizeSuccessResponse | SynthesizeErrorResponse
    usage_event: UsageEvent | None = None

    @property
    def succeeded(self) -> bool:
        return isinstance(self.body, SynthesizeSuccessResponse)

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=self.body.model_dump(mode="json", by_alias=True, exclude_none=True),
        )


def _error(
    status_code: int,
    message: str,
    usage: ApiUsage,
    code: str | None = None,
) -> SynthesisOutcome:
    return SynthesisOutcome(
        status_code=status_code,
        body=SynthesizeErrorResponse(
            message=message,
            code=code,
            api_usage=usage,
            api_limit_exceeded=usage.limit_exceeded,
            warning=LIMIT_EXCEEDED_WARNING if usage.limit_exceeded else None,
        ),
    )


class TTSProxyService:
    """Validates, checks quota, calls upstream and accounts for the call.

    A call is charged only after the upstream service returned audio;
    rejected and failed attempts leave the counter untouched.
    """

    def __init__(
        self,
        ledger: QuotaLedger,
        client: TTSClient,
        enforcement: Literal["soft", "hard"] = "soft",
    ) -> None:
        self.ledger = ledger
        self.client = client
        self.enforcement = enforcement

    async def synthesize(self, user_id: int, request: SynthesizeRequest) -> SynthesisOutcome:
        usage = await self.ledger.snapshot(user_id)

        text = request.text if request.text and request.text.strip() else None
        language = (request.language or "").strip()
        if text is None:
            return _error(status.HTTP_400_BAD_REQUEST, TEXT_REQUIRED, usage)
        if not language:
            return _error(status.HTTP_400_BAD_REQUEST, LANGUAGE_REQUIRED, usage)

        if self.enforcement == "hard" and usage.limit_exceeded:
            logger.info("Synthesis rejected, quota exhausted", user_id=user_id, used=usage.used)
            return _error(
                status.HTTP_429_TOO_MANY_REQUESTS,
                LIMIT_EXCEEDED_WARNING,
                usage,
                code="QUOTA_EXCEEDED",
            )

        try:
            result = await self.client.synthesize(
                SynthesisRequest(
                    text=text,
                    language=language,
                    speaker_id=request.speaker_id,
                    speaker_wav_base64=request.speaker_wav_base64,
                    speaker_wav_url=request.speaker_wav_url,
                )
            )
        except TTSUpstreamError as exc:
            logger.warning(
                "Synthesis failed upstream",
                user_id=user_id,
                status_code=exc.status_code,
                message=exc.message,
            )
            return _error(exc.status_code, exc.message, usage)

        await self.ledger.increment(user_id)
        usage = await self.ledger.snapshot(user_id)

        logger.info(
            "Synthesis completed",
            user_id=user_id,
            language=language,
            used=usage.used,
            limit=usage.limit,
        )
        return SynthesisOutcome(
            status_code=status.HTTP_200_OK,
            body=SynthesizeSuccessResponse(
                audio_base64=result.audio_base64,
                sample_rate=result.sample_rate,
                api_usage=usage,
                api_limit_exceeded=usage.limit_exceeded,
                warning=LIMIT_EXCEEDED_WARNING if usage.limit_exceeded else None,
            ),
            usage_event=UsageEvent(
                user_id=user_id,
                endpoint=SYNTHESIZE_ENDPOINT,
                method="POST",
                language_code=language,
            ),
        )
