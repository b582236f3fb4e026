"""Structured request logging: request_id, route, status, latency."""
import json
import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from object_storage.core.logging_redaction import redact_for_log
from object_storage.core.metrics import record_request

logger = logging.getLogger("object_storage.request")

_UNMETERED_PATHS = ("/metrics", "/health", "/healthz")


def _safe_extra(request: Request, status_code: int, latency_ms: float) -> dict[str, Any]:
    extra: dict[str, Any] = {
        "request_id": getattr(request.state, "request_id", None),
        "method": request.method,
        "path": request.url.path,
        "status_code": status_code,
        "latency_ms": round(latency_ms, 2),
    }
    # Signed-link query strings carry expiry only; anything else is dropped by redaction
    if request.url.query:
        extra["query"] = dict(request.query_params)
    return redact_for_log(extra)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assign request_id and log one structured line per request (route, status, latency)."""

    def __init__(self, app, log_json: bool = False) -> None:
        super().__init__(app)
        self.log_json = log_json

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - start) * 1000
        extra = _safe_extra(request, response.status_code, latency_ms)
        if self.log_json:
            logger.info(json.dumps({"event": "request", **extra}))
        else:
            logger.info("request %s %s %s %.2fms", request.method, request.url.path, response.status_code, latency_ms, extra=extra)
        response.headers["X-Request-ID"] = request_id
        if request.url.path not in _UNMETERED_PATHS:
            record_request(request.method, request.url.path, response.status_code, latency_ms / 1000.0)
        return response
