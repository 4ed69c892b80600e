"""Per-request correlation ids."""

import re
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from audiobook_shared.logging import correlation_scope

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Client-supplied ids are reused only when they look like an opaque token
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_correlation_id(supplied: str | None) -> str:
    """Reuse a well-formed incoming id, otherwise mint a new one."""
    if supplied and _ACCEPTED_ID.match(supplied):
        return supplied
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tags the request, its log events and its response with one id."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        request.state.correlation_id = correlation_id

        with correlation_scope(correlation_id, method=request.method, path=request.url.path):
            response = await call_next(request)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


def get_correlation_id(request: Request) -> str | None:
    return getattr(request.state, "correlation_id", None)
