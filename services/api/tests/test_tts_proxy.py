"""Tests for the quota-gated synthesis proxy."""

import json

import httpx
import pytest

from audiobook_api.models.tts import SynthesizeErrorResponse, SynthesizeRequest
from audiobook_api.services import CredentialStore, QuotaLedger, TTSProxyService
from audiobook_api.services.tts_proxy import (
    LANGUAGE_REQUIRED,
    LIMIT_EXCEEDED_WARNING,
    SYNTHESIZE_ENDPOINT,
    TEXT_REQUIRED,
)

pytestmark = pytest.mark.integration


@pytest.fixture
async def user_id(session) -> int:
    result = await CredentialStore(session).create("listener@example.com", "hash")
    return result.user_id


@pytest.fixture
def ledger(session) -> QuotaLedger:
    return QuotaLedger(session)


@pytest.fixture
def proxy(ledger, tts_client) -> TTSProxyService:
    return TTSProxyService(ledger, tts_client)


async def set_used(ledger: QuotaLedger, user_id: int, count: int) -> None:
    for _ in range(count):
        await ledger.increment(user_id)


class TestValidation:
    """Rejected before the upstream service is called."""

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    async def test_missing_text(self, proxy, ledger, tts_backend, user_id, text):
        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text=text))

        assert outcome.status_code == 400
        assert outcome.body.message == TEXT_REQUIRED
        assert outcome.usage_event is None
        assert tts_backend.calls == 0
        assert (await ledger.get_usage(user_id)).used == 0

    @pytest.mark.parametrize("language", [None, "", "  "])
    async def test_missing_language(self, proxy, tts_backend, user_id, language):
        outcome = await proxy.synthesize(
            user_id, SynthesizeRequest(text="Hello", language=language)
        )

        assert outcome.status_code == 400
        assert outcome.body.message == LANGUAGE_REQUIRED
        assert tts_backend.calls == 0

    async def test_error_carries_usage_snapshot(self, proxy, user_id):
        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text=""))

        body = outcome.to_response().body
        content = json.loads(body)
        assert content["success"] is False
        assert content["apiUsage"] == {
            "used": 0,
            "limit": 20,
            "remaining": 20,
            "limitExceeded": False,
        }
        assert content["apiLimitExceeded"] is False
        assert "warning" not in content

    def test_error_body_fields(self):
        assert set(SynthesizeErrorResponse.model_fields) == {
            "success",
            "message",
            "code",
            "api_usage",
            "api_limit_exceeded",
            "warning",
        }


class TestSuccess:
    """Upstream returns audio."""

    async def test_charges_one_call(self, proxy, ledger, tts_backend, user_id):
        outcome = await proxy.synthesize(
            user_id, SynthesizeRequest(text="Once upon a time", language="fr")
        )

        assert outcome.status_code == 200
        assert outcome.succeeded
        assert outcome.body.audio_base64 == "UklGRiQAAABXQVZF"
        assert outcome.body.sample_rate == 24000
        assert outcome.body.api_usage.used == 1
        assert outcome.body.warning is None
        assert (await ledger.get_usage(user_id)).used == 1

    async def test_forwards_request_fields(self, proxy, tts_backend, user_id):
        await proxy.synthesize(
            user_id,
            SynthesizeRequest(
                text="Hello",
                language="de",
                speaker_id="narrator",
                speaker_wav_url="http://voices.test/narrator.wav",
            ),
        )

        sent = json.loads(tts_backend.requests[0].content)
        assert sent == {
            "text": "Hello",
            "language": "de",
            "speaker_id": "narrator",
            "speaker_wav_url": "http://voices.test/narrator.wav",
        }
        assert tts_backend.requests[0].url.path == "/synthesize"

    async def test_usage_event_describes_call(self, proxy, user_id):
        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="Hi", language=" es "))

        assert outcome.usage_event.user_id == user_id
        assert outcome.usage_event.endpoint == SYNTHESIZE_ENDPOINT
        assert outcome.usage_event.method == "POST"
        assert outcome.usage_event.language_code == "es"

    async def test_warns_once_limit_reached(self, proxy, ledger, user_id):
        await set_used(ledger, user_id, 19)

        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="Last one"))

        assert outcome.status_code == 200
        assert outcome.body.api_usage.used == 20
        assert outcome.body.api_usage.remaining == 0
        assert outcome.body.api_limit_exceeded is True
        assert outcome.body.warning == LIMIT_EXCEEDED_WARNING

    async def test_soft_gate_serves_past_limit(self, proxy, ledger, tts_backend, user_id):
        await set_used(ledger, user_id, 25)

        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="More please"))

        assert outcome.status_code == 200
        assert outcome.body.api_usage.used == 26
        assert outcome.body.api_usage.remaining == 0
        assert tts_backend.calls == 1


class TestUpstreamFailure:
    """Failed calls are passed through and never charged."""

    @pytest.mark.parametrize(
        "status_code,body,message",
        [
            (500, {"detail": "Model crashed"}, "Model crashed"),
            (422, {"message": "Unsupported language"}, "Unsupported language"),
            (503, "<html>down</html>", "Text-to-speech service error"),
        ],
    )
    async def test_error_status_passes_through(
        self, proxy, ledger, tts_backend, user_id, status_code, body, message
    ):
        tts_backend.fail_with(status_code, body)

        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="Hello"))

        assert outcome.status_code == status_code
        assert outcome.body.message == message
        assert outcome.usage_event is None
        assert (await ledger.get_usage(user_id)).used == 0

    async def test_missing_audio(self, proxy, ledger, tts_backend, user_id):
        tts_backend.fail_with(200, {"sample_rate": 24000})

        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="Hello"))

        assert outcome.status_code == 502
        assert (await ledger.get_usage(user_id)).used == 0

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (httpx.ReadTimeout("slow"), 504),
            (httpx.ConnectError("refused"), 503),
        ],
    )
    async def test_transport_errors(self, proxy, ledger, tts_backend, user_id, error, status_code):
        tts_backend.error = error

        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="Hello"))

        assert outcome.status_code == status_code
        assert outcome.body.success is False
        assert (await ledger.get_usage(user_id)).used == 0


class TestHardGate:
    """Build configured to reject calls past the limit."""

    @pytest.fixture
    def proxy(self, ledger, tts_client) -> TTSProxyService:
        return TTSProxyService(ledger, tts_client, enforcement="hard")

    async def test_rejects_when_exhausted(self, proxy, ledger, tts_backend, user_id):
        await set_used(ledger, user_id, 20)

        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="Hello"))

        assert outcome.status_code == 429
        assert outcome.body.code == "QUOTA_EXCEEDED"
        assert outcome.body.api_limit_exceeded is True
        assert tts_backend.calls == 0
        assert (await ledger.get_usage(user_id)).used == 20

    async def test_allows_last_call(self, proxy, ledger, user_id):
        await set_used(ledger, user_id, 19)

        outcome = await proxy.synthesize(user_id, SynthesizeRequest(text="Hello"))

        assert outcome.status_code == 200
        assert outcome.body.api_limit_exceeded is True
