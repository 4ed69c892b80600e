"""Data models for the upstream text-to-speech client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_SERVICE_ERROR_MESSAGE = "Text-to-speech service error"


class TTSUpstreamError(Exception):
    """Raised when the synthesis service fails or cannot be reached.

    ``status_code`` is the status the gateway should answer with: the upstream
    status for non-2xx replies, 502 for malformed replies, 503 when the service
    is unreachable and 504 on timeout.
    """

    def __init__(self, status_code: int, message: str = DEFAULT_SERVICE_ERROR_MESSAGE) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class SynthesisRequest:
    """Payload forwarded to ``POST {base_url}/synthesize``."""

    text: str
    language: str = "en"
    speaker_id: str = "default"
    speaker_wav_base64: str | None = None
    speaker_wav_url: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body, leaving out unset optional speaker fields."""
        payload: dict[str, Any] = {
            "text": self.text,
            "language": self.language,
            "speaker_id": self.speaker_id,
        }
        if self.speaker_wav_base64 is not None:
            payload["speaker_wav_base64"] = self.speaker_wav_base64
        if self.speaker_wav_url is not None:
            payload["speaker_wav_url"] = self.speaker_wav_url
        return payload


@dataclass
class SynthesisResult:
    """Audio returned by a successful synthesis call."""

    audio_base64: str
    sample_rate: int | None = None
