from __future__ import annotations

import logging
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from wrist_intake.main import create_app
from tests.patients._helpers import intake_payload


def test_corrupt_image_keeps_app_up_and_answers_503(
    storage_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    storage_dir.mkdir(parents=True)
    (storage_dir / "clinical_records_db.sqlite").write_text("[1, 2, 3]", encoding="utf-8")
    caplog.set_level(logging.ERROR, logger="wrist_intake.startup")

    with TestClient(create_app()) as client:
        assert client.get("/health").status_code == 200

        for res in (
            client.get("/patients"),
            client.get("/patients/12345678"),
            client.post("/patients/records", json=intake_payload(dni="12345678")),
            client.get("/patients/12345678/export.pdf"),
        ):
            assert res.status_code == 503
            assert res.json()["detail"] == "Clinical store unavailable"

    assert any(r.name == "wrist_intake.startup" for r in caplog.records)
    # The unreadable image is never overwritten.
    assert (storage_dir / "clinical_records_db.sqlite").read_text(encoding="utf-8") == "[1, 2, 3]"
