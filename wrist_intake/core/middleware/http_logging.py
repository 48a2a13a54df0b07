"""HTTP logging middleware and the request metadata shared by every request log.

Intake payloads hold a national ID, names and clinical history, and patient
routes carry the DNI in the URL. A request log therefore carries only:
correlation id, method, route template and status code (plus duration for the
per-request record). `request_log_fields` is the single place that builds
those fields; the error handlers use it too.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("wrist_intake.http")

REQUEST_ID_HEADER = "X-Request-ID"
UNMATCHED_ROUTE = "unmatched"
_SAFE_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def _get_or_create_request_id(*, request: Request) -> str:
    """Propagate a well-formed incoming X-Request-ID or mint a new one."""

    candidate = request.headers.get(REQUEST_ID_HEADER)
    if candidate and _SAFE_REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return uuid.uuid4().hex


def route_template(request: Request) -> str:
    """Matched route template (e.g. /patients/{patient_id}), or "unmatched"."""

    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return UNMATCHED_ROUTE


def request_log_fields(request: Request, *, status_code: int) -> dict[str, object]:
    """Log `extra` fields for one request. Never includes the raw path, query or body."""

    return {
        "request_id": getattr(request.state, "request_id", None),
        "http_method": request.method,
        "request_path": route_template(request),
        "status_code": status_code,
    }


class HttpLoggingMiddleware(BaseHTTPMiddleware):
    """One metadata-only log record per request; X-Request-ID on every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = _get_or_create_request_id(request=request)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001 - logged with stack trace, then re-raised
            logger.exception(
                "Unhandled exception while processing request",
                extra={
                    **request_log_fields(request, status_code=500),
                    "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                },
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        logger.info(
            "Request completed",
            extra={
                **request_log_fields(request, status_code=response.status_code),
                "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
            },
        )
        return response
