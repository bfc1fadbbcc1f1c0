from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from svc_customizer.logging import request_id_var

log = logging.getLogger("svc_customizer.http")

REQUEST_ID_HEADER = "X-Request-Id"
_MAX_INBOUND_ID = 128


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Propagates X-Request-Id into logs and the response, and logs one line per request.

    Unhandled exceptions are turned into the 500 body here, while the id is
    still bound, so error responses carry the header like every other one.
    """

    async def dispatch(self, request: Request, call_next):
        inbound = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        rid = inbound[:_MAX_INBOUND_ID] or uuid.uuid4().hex
        request.state.request_id = rid
        token = request_id_var.set(rid)
        started = time.perf_counter()
        try:
            try:
                resp = await call_next(request)
            except Exception:
                log.exception("unhandled_error", extra={"path": request.url.path, "request_id": rid})
                resp = JSONResponse(status_code=500, content={"error": "internal_error", "code": "internal_error"})

            resp.headers[REQUEST_ID_HEADER] = rid
            log.info(
                "http.request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": resp.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                },
            )
            return resp
        finally:
            request_id_var.reset(token)
