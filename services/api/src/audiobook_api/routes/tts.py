"""Text-to-speech synthesis route."""

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse

from audiobook_shared.db.models import User

from ..dependencies import authenticate_user, get_tts_proxy, get_usage_log_queue
from ..models import SynthesizeErrorResponse, SynthesizeRequest, SynthesizeSuccessResponse
from ..services import TTSProxyService, UsageLogQueue

router = APIRouter(prefix="/tts", tags=["TTS"])


@router.post(
    "/synthesize",
    response_model=SynthesizeSuccessResponse,
    responses={
        400: {"model": SynthesizeErrorResponse, "description": "Missing text or language"},
        429: {"model": SynthesizeErrorResponse, "description": "Quota exhausted (hard gate)"},
        502: {"model": SynthesizeErrorResponse, "description": "Invalid upstream response"},
        503: {"model": SynthesizeErrorResponse, "description": "Upstream unreachable"},
        504: {"model": SynthesizeErrorResponse, "description": "Upstream timed out"},
    },
    summary="Synthesize Speech",
)
async def synthesize(
    background_tasks: BackgroundTasks,
    body: SynthesizeRequest | None = None,
    user: User = Depends(authenticate_user),
    proxy: TTSProxyService = Depends(get_tts_proxy),
    queue: UsageLogQueue = Depends(get_usage_log_queue),
) -> JSONResponse:
    """Synthesize speech for the caller and charge one call on success.

    Upstream error statuses are passed through. Every response carries the
    caller's quota snapshot.
    """
    outcome = await proxy.synthesize(user.id, body or SynthesizeRequest())
    if outcome.usage_event is not None:
        background_tasks.add_task(queue.submit, outcome.usage_event)
    return outcome.to_response()
