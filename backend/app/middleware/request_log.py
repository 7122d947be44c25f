import logging
import re
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import request_id_ctx_var

logger = logging.getLogger("app.request")

# Health checks and metric scrapes log at DEBUG.
_QUIET_PATHS = frozenset({"/api/v1/health", "/api/v1/health/ready", "/api/v1/metrics"})
_ADMIN_PREFIXES = ("/api/v1/coupons/admin", "/api/v1/awards/admin", "/api/v1/donations/admin")
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def _incoming_request_id(request: Request) -> str:
    candidate = (request.headers.get("X-Request-ID") or "").strip()
    if _REQUEST_ID_RE.fullmatch(candidate):
        return candidate
    return str(uuid.uuid4())


def _log_level(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.WARNING
    if path in _QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, echo it back, and log one line per response."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = _incoming_request_id(request)
        token = request_id_ctx_var.set(request_id)
        start = time.perf_counter()
        request.state.request_id = request_id
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            if response is not None:
                path = request.url.path
                response.headers["X-Request-ID"] = request_id
                logger.log(
                    _log_level(path, response.status_code),
                    "request",
                    extra={
                        "path": path,
                        "method": request.method,
                        "status_code": response.status_code,
                        "duration_ms": int((time.perf_counter() - start) * 1000),
                        "admin_action": path.startswith(_ADMIN_PREFIXES),
                        "admin_user_id": getattr(request.state, "admin_user_id", None),
                    },
                )
            request_id_ctx_var.reset(token)
