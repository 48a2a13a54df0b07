from __future__ import annotations

import time
from typing import cast

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from wrist_intake.core.middleware.http_logging import route_template

metrics_router = APIRouter(tags=["metrics"])

# IMPORTANT (healthcare safety): labels never carry a DNI or a record id.
# The route label is always a template (e.g. /patients/{patient_id}) or "unmatched".

http_requests_total = Counter(
    "wrist_intake_http_requests_total",
    "Total HTTP requests",
    labelnames=("method", "route", "status_code"),
)

http_request_duration_seconds = Histogram(
    "wrist_intake_http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=("method", "route", "status_code"),
    # LLM-backed endpoints can take tens of seconds.
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

enrichment_requests_total = Counter(
    "wrist_intake_enrichment_requests_total",
    "AI enrichment calls by kind and outcome",
    labelnames=("kind", "outcome"),
)

store_persist_duration_seconds = Histogram(
    "wrist_intake_store_persist_duration_seconds",
    "Time spent serializing and writing the database image",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)


def record_enrichment_outcome(*, kind: str, ok: bool) -> None:
    enrichment_requests_total.labels(kind=kind, outcome="success" if ok else "failure").inc()


class PrometheusMetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route_label = route_template(request)
            code = str(int(status_code))
            http_requests_total.labels(
                method=request.method, route=route_label, status_code=code
            ).inc()
            http_request_duration_seconds.labels(
                method=request.method, route=route_label, status_code=code
            ).observe(time.perf_counter() - started)


@metrics_router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    payload = generate_latest()
    return Response(content=cast(bytes, payload), media_type=CONTENT_TYPE_LATEST)
