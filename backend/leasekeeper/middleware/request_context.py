# backend/leasekeeper/middleware/request_context.py
from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

log = logging.getLogger("leasekeeper.request")


def get_request_id() -> str | None:
    return request_id_ctx.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id for the lifetime of the request and emits one access
    line when it finishes.

    - honours an incoming X-Request-ID, otherwise generates a uuid4
    - the id is readable from any logger through get_request_id()
    - the access line carries method, path, status, latency and acting user
    """

    header_out = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get("X-Request-ID") or request.headers.get("X-Request-Id") or str(uuid.uuid4())
        token = request_id_ctx.set(rid)
        t0 = time.perf_counter()
        status_code = 500
        try:
            resp = await call_next(request)
            status_code = resp.status_code
            resp.headers[self.header_out] = rid
            return resp
        finally:
            log.info(
                "http_request %s %s -> %s",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "user_id": request.headers.get("X-User-Id"),
                    "latency_ms": int((time.perf_counter() - t0) * 1000),
                },
            )
            request_id_ctx.reset(token)
