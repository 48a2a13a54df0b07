"""Unit tests for the HTTP logging middleware.

We assert structured log fields via `caplog` (not message strings) and verify:
- X-Request-ID is generated or propagated, malformed ids are replaced
- Logged paths are route templates, so a DNI in the URL never reaches the log
- Unhandled exceptions emit an ERROR log entry with a stack trace and return 500
"""

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wrist_intake.core.middleware.http_logging import HttpLoggingMiddleware


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(HttpLoggingMiddleware)

    @app.get("/patients/{patient_id}")
    async def patient(patient_id: str) -> dict[str, str]:
        return {"id": patient_id}

    @app.get("/boom/{patient_id}")
    async def boom(patient_id: str) -> None:
        raise RuntimeError("boom")

    return app


def _http_records(caplog: pytest.LogCaptureFixture) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "wrist_intake.http"]


def test_logs_route_template_not_patient_dni(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="wrist_intake.http")

    with TestClient(_make_app()) as client:
        res = client.get("/patients/12345678?nombre=Juan")

    assert res.status_code == 200
    assert res.headers["x-request-id"]

    info_records = [r for r in _http_records(caplog) if r.levelno == logging.INFO]
    assert len(info_records) == 1

    record = info_records[0]
    assert record.__dict__["request_id"] == res.headers["x-request-id"]
    assert record.__dict__["http_method"] == "GET"
    assert record.__dict__["request_path"] == "/patients/{patient_id}"
    assert record.__dict__["status_code"] == 200
    assert record.__dict__["duration_ms"] >= 0
    logged = f"{record.getMessage()} {record.__dict__['request_path']}"
    assert "12345678" not in logged
    assert "Juan" not in logged


def test_propagates_valid_request_id(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="wrist_intake.http")

    with TestClient(_make_app()) as client:
        res = client.get("/patients/1", headers={"X-Request-ID": "req_abc-123"})

    assert res.headers["x-request-id"] == "req_abc-123"
    info_records = [r for r in _http_records(caplog) if r.levelno == logging.INFO]
    assert info_records[0].__dict__["request_id"] == "req_abc-123"


def test_replaces_malformed_request_id() -> None:
    with TestClient(_make_app()) as client:
        res = client.get("/patients/1", headers={"X-Request-ID": "bad id with spaces"})

    assert res.headers["x-request-id"] != "bad id with spaces"
    assert len(res.headers["x-request-id"]) == 32


def test_unmatched_route_is_logged_as_unmatched(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="wrist_intake.http")

    with TestClient(_make_app()) as client:
        res = client.get("/nowhere/99888777")

    assert res.status_code == 404
    record = _http_records(caplog)[0]
    assert record.__dict__["request_path"] == "unmatched"


def test_unhandled_exception_returns_500_and_logs_error_with_request_id(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="wrist_intake.http")

    with TestClient(_make_app(), raise_server_exceptions=False) as client:
        res = client.get("/boom/12345678", headers={"X-Request-ID": "req_err_001"})

    assert res.status_code == 500

    error_records = [r for r in _http_records(caplog) if r.levelno == logging.ERROR]
    assert len(error_records) == 1

    record = error_records[0]
    assert record.__dict__["request_id"] == "req_err_001"
    assert record.__dict__["request_path"] == "/boom/{patient_id}"
    assert record.__dict__["status_code"] == 500
    assert record.exc_info
