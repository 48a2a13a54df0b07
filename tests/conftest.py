from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture()
def storage_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture(autouse=True)
def _set_test_storage(storage_dir: Path) -> None:
    os.environ["STORAGE_BASE_PATH"] = str(storage_dir)
    os.environ["APP_ENV"] = "test"
    # Never reach a real LLM from tests; enrichment tests inject fakes.
    os.environ["OPENAI_API_KEY"] = ""
    # Settings are cached via @lru_cache; clear so each test can use its own storage dir.
    from wrist_intake.core.settings import get_settings

    get_settings.cache_clear()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from wrist_intake.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c
