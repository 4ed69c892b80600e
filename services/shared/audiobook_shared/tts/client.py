"""HTTP client for the upstream text-to-speech service."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from audiobook_shared.tts.models import (
    DEFAULT_SERVICE_ERROR_MESSAGE,
    SynthesisRequest,
    SynthesisResult,
    TTSUpstreamError,
)

if TYPE_CHECKING:
    from audiobook_shared.config import TTSSettings

logger = structlog.get_logger(__name__)

INVALID_RESPONSE_MESSAGE = "Invalid response from text-to-speech service"
TIMEOUT_MESSAGE = "Text-to-speech service timed out"
UNAVAILABLE_MESSAGE = "Text-to-speech service unavailable"


def _error_message(response: httpx.Response) -> str:
    """Pick a human-readable message out of an upstream error body."""
    try:
        body = response.json()
    except ValueError:
        return DEFAULT_SERVICE_ERROR_MESSAGE
    if isinstance(body, dict):
        for key in ("detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return DEFAULT_SERVICE_ERROR_MESSAGE


class TTSClient:
    """Calls the synthesis service with an explicit timeout.

    Every failure mode is reported as :class:`TTSUpstreamError` so callers only
    have one exception type to map onto a response.

    Usage::

        client = TTSClient(settings.tts)
        result = await client.synthesize(SynthesisRequest(text="Hello", language="en"))
    """

    def __init__(
        self,
        settings: TTSSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.base_url.rstrip("/")
        self._timeout = settings.timeout_seconds
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"base_url": self._base_url, "timeout": self._timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def synthesize(self, request: SynthesisRequest) -> SynthesisResult:
        """Synthesize speech for ``request``.

        Raises:
            TTSUpstreamError: On non-2xx replies, malformed replies, timeouts
                and connection failures.
        """
        log = logger.bind(language=request.language, text_length=len(request.text))
        start = time.monotonic()

        try:
            async with self._client() as client:
                response = await client.post("/synthesize", json=request.to_payload())
        except httpx.TimeoutException as exc:
            log.warning("TTS request timed out", timeout_seconds=self._timeout, error=str(exc))
            raise TTSUpstreamError(504, TIMEOUT_MESSAGE) from exc
        except httpx.TransportError as exc:
            log.warning("TTS service unreachable", error=str(exc))
            raise TTSUpstreamError(503, UNAVAILABLE_MESSAGE) from exc

        duration_ms = int((time.monotonic() - start) * 1000)
        log = log.bind(status_code=response.status_code, duration_ms=duration_ms)

        if not response.is_success:
            message = _error_message(response)
            log.warning("TTS request failed", message=message)
            raise TTSUpstreamError(response.status_code, message)

        try:
            body = response.json()
        except ValueError as exc:
            log.warning("TTS response body is not JSON")
            raise TTSUpstreamError(502, INVALID_RESPONSE_MESSAGE) from exc

        audio = body.get("audio_base64") if isinstance(body, dict) else None
        if not isinstance(audio, str) or not audio:
            log.warning("TTS response has no audio")
            raise TTSUpstreamError(502, INVALID_RESPONSE_MESSAGE)

        sample_rate = body.get("sample_rate")
        if not isinstance(sample_rate, int) or isinstance(sample_rate, bool):
            sample_rate = None

        log.info("TTS request completed")
        return SynthesisResult(audio_base64=audio, sample_rate=sample_rate)
