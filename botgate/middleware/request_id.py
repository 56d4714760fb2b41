from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_REQUEST_ID: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_HEADER = "X-Request-ID"


def get_request_id() -> Optional[str]:
    """Request id of the request being handled, for log correlation."""
    return _REQUEST_ID.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Accept an incoming X-Request-ID or mint a UUID4, expose it through a
    contextvar for log lines, and echo it on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = (request.headers.get(_HEADER) or "").strip() or str(uuid.uuid4())
        token = _REQUEST_ID.set(rid)
        try:
            request.state.request_id = rid
            response = await call_next(request)
        finally:
            # Reset so ids never leak across requests.
            _REQUEST_ID.reset(token)

        if _HEADER not in response.headers:
            response.headers[_HEADER] = rid
        return response
