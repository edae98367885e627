# backend/app/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

log = logging.getLogger("agency_listings.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one `http_request` log line per request:
      request_id, method, path, query, status_code, latency_ms, auth_user_id

    The caller id is whatever the identity header carried; the resolved
    local profile is only known inside the handlers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = int((time.perf_counter() - t0) * 1000)
            log.info(
                "http_request",
                extra={
                    "status": status_code,
                    "action": f"{request.method} {request.url.path}",
                    "query": str(request.url.query) if request.url.query else "",
                    "latency_ms": latency_ms,
                    "auth_user_id": request.headers.get(settings.dev_header_user_id),
                },
            )
