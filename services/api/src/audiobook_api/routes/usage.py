"""Development helper for moving a user's quota counter."""

from fastapi import APIRouter, Depends

from audiobook_shared.db.models import User

from ..dependencies import get_quota_ledger, require_user
from ..models import MessageResponse
from ..services import QuotaLedger

router = APIRouter(prefix="/usage", tags=["Usage"])


@router.post("/increment", response_model=MessageResponse, summary="Increment Usage")
async def increment_usage(
    user: User = Depends(require_user),
    ledger: QuotaLedger = Depends(get_quota_ledger),
) -> MessageResponse:
    """Charge one call to the caller without synthesizing. Not mounted in production."""
    await ledger.increment(user.id)
    return MessageResponse(message="API usage incremented")
