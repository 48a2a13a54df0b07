from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from wrist_intake.api.exception_handlers import register_exception_handlers
from wrist_intake.api.schemas import HealthOut
from wrist_intake.core.blob_storage import LocalBlobStorage
from wrist_intake.core.logging import setup_logging
from wrist_intake.core.metrics import PrometheusMetricsMiddleware, metrics_router
from wrist_intake.core.middleware.http_logging import HttpLoggingMiddleware
from wrist_intake.core.settings import get_settings
from wrist_intake.domain.exceptions import StoreInitializationError
from wrist_intake.enrichment.router import router as enrichment_router
from wrist_intake.patients.router import router as patients_router
from wrist_intake.patients.store import ClinicalStore

setup_logging()
logger = logging.getLogger("wrist_intake.startup")


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Defer settings/env access until application startup (tests set env per case).
        settings = get_settings()
        store = ClinicalStore(
            blob_storage=LocalBlobStorage(base_dir=Path(settings.storage_base_path)),
            image_key=settings.database_image_key,
        )
        try:
            await store.open()
        except StoreInitializationError:
            # Keep serving: dependent endpoints answer 503 until the image is repaired.
            logger.exception("Clinical store failed to initialize")
            app.state.clinical_store = None
        else:
            app.state.clinical_store = store
        yield
        if app.state.clinical_store is not None:
            await app.state.clinical_store.close()

    app = FastAPI(
        title="Wrist Intake API",
        description=(
            "Clinical intake for wrist-injury patients.\n\n"
            "Design principles:\n"
            "- Patients are keyed by national ID (DNI); every submission appends a "
            "clinical record.\n"
            "- The whole database is an in-memory SQLite image persisted after every "
            "change.\n"
            "- AI enrichment is on demand; failures return a message and never alter "
            "stored data.\n"
            "- Logging and metrics avoid PHI/PII by using route templates and metadata only."
        ),
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": (
                    "Basic uptime and readiness checks for load balancers and monitoring."
                ),
            },
            {
                "name": "patients",
                "description": "Save intake submissions and read patients with their records.",
            },
            {
                "name": "clinical-records",
                "description": "Attach or regenerate the CIF profile of a clinical record.",
            },
            {
                "name": "enrichment",
                "description": "AI-generated narrative summary and radiograph interpretation.",
            },
            {
                "name": "export",
                "description": "Paginated A4 PDF of a patient sheet.",
            },
            {
                "name": "metrics",
                "description": "Prometheus-compatible metrics endpoint.",
            },
        ],
    )

    app.add_middleware(PrometheusMetricsMiddleware)
    app.add_middleware(HttpLoggingMiddleware)

    register_exception_handlers(app)

    @app.get(
        "/health",
        response_model=HealthOut,
        tags=["health"],
        summary="Health check",
        description=(
            "Lightweight endpoint to verify the API process is running.\n\n"
            "This endpoint intentionally does not check the clinical store so it can be "
            "used safely for basic uptime checks."
        ),
    )
    async def health() -> HealthOut:
        return HealthOut(status="ok")

    app.include_router(metrics_router)
    app.include_router(patients_router)
    app.include_router(enrichment_router)
    return app


app = create_app()
