# backend/app/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"

# Caller-supplied ids end up in every log line; keep them short and printable.
_ACCEPTABLE = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def pick_request_id(incoming: Optional[str]) -> str:
    if incoming and _ACCEPTABLE.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id shared by its log lines and its response.

    An incoming X-Request-ID is honoured when it looks sane, otherwise a
    fresh one is minted. The id is published on request.state and through
    request_id_ctx for the JSON log formatter.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # header lookup is case-insensitive
        rid = pick_request_id(request.headers.get(HEADER))
        request.state.request_id = rid

        token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[HEADER] = rid
        return response
