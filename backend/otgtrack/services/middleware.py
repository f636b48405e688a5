"""
middleware.py — Request tracing for the OTG Track API.

Every response carries ``X-Request-ID`` (the caller's, or a new uuid4) and
``X-Process-Time`` in milliseconds. One log line per request, with a level
that follows the outcome: errors for 5xx and unhandled exceptions, warnings
for 4xx and slow requests (spreadsheet imports mostly), info otherwise.
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("otgtrack-api.middleware")

QUIET_PATHS = {"/health"}

SLOW_REQUEST_MS: float = 2000.0


def _outcome_level(status_code: int, duration_ms: float) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400 or duration_ms >= SLOW_REQUEST_MS:
        return logging.WARNING
    return logging.INFO


class RequestTimingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        fields = {
            "request_id": request_id,
            "http_method": request.method,
            "http_path": request.url.path,
            "client": request.client.host if request.client else None,
        }
        started = time.perf_counter()

        try:
            response: Response = await call_next(request)
        except Exception:
            elapsed = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(
                f"{request.method} {request.url.path} failed after {elapsed} ms",
                extra={**fields, "duration_ms": elapsed, "http_status": 500},
            )
            raise

        elapsed = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(elapsed)

        level = _outcome_level(response.status_code, elapsed)
        if request.url.path not in QUIET_PATHS or level > logging.INFO:
            logger.log(
                level,
                f"{request.method} {request.url.path} -> {response.status_code} ({elapsed} ms)",
                extra={**fields, "duration_ms": elapsed, "http_status": response.status_code},
            )
        return response
