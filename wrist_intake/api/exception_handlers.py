from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from wrist_intake.core.middleware.http_logging import request_log_fields
from wrist_intake.domain.exceptions import (
    BusinessValidationError,
    StorageIOError,
    StoreUnavailableError,
)

logger = logging.getLogger("wrist_intake.errors")


def _request_metadata(request: Request, *, status_code: int, error: str) -> dict[str, object]:
    # Route template and correlation id only; patient URLs carry the DNI.
    return {**request_log_fields(request, status_code=status_code), "error": error}


def register_exception_handlers(app: FastAPI) -> None:
    """Register application exception handlers."""

    @app.exception_handler(BusinessValidationError)
    async def handle_business_validation_error(
        request: Request,
        exc: BusinessValidationError,
    ) -> JSONResponse:
        logger.info(
            "Business validation failed",
            extra=_request_metadata(request, status_code=400, error="business_validation"),
        )
        return JSONResponse(status_code=400, content={"detail": exc.message})

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(
        request: Request,
        exc: StoreUnavailableError,
    ) -> JSONResponse:
        logger.warning(
            "Clinical store unavailable",
            extra=_request_metadata(request, status_code=503, error="store_unavailable"),
        )
        return JSONResponse(status_code=503, content={"detail": "Clinical store unavailable"})

    @app.exception_handler(StorageIOError)
    async def handle_storage_io_error(
        request: Request,
        exc: StorageIOError,
    ) -> JSONResponse:
        logger.error(
            "Clinical store persistence failed",
            extra=_request_metadata(request, status_code=500, error="storage_io"),
        )
        return JSONResponse(
            status_code=500, content={"detail": "Clinical store persistence failed"}
        )
