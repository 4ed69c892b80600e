"""Upstream text-to-speech client."""

from audiobook_shared.tts.client import TTSClient
from audiobook_shared.tts.models import (
    DEFAULT_SERVICE_ERROR_MESSAGE,
    SynthesisRequest,
    SynthesisResult,
    TTSUpstreamError,
)

__all__ = [
    "DEFAULT_SERVICE_ERROR_MESSAGE",
    "SynthesisRequest",
    "SynthesisResult",
    "TTSClient",
    "TTSUpstreamError",
]
