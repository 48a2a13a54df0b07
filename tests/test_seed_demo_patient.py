from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path

from scripts.seed_demo_patient import demo_submission, seed_demo_patient_if_empty
from wrist_intake.core.blob_storage import LocalBlobStorage
from wrist_intake.patients.store import ClinicalStore


def _store(tmp_path: Path) -> ClinicalStore:
    return ClinicalStore(
        blob_storage=LocalBlobStorage(base_dir=tmp_path), image_key="clinical_records_db.sqlite"
    )


def test_demo_submission_is_a_complete_intake() -> None:
    payload = demo_submission(today=date(2025, 3, 10))
    assert payload.filiatorios.dni == "99888777"
    assert payload.anamnesis.fecha_atencion_medica == "2025-03-03"
    assert payload.physical_exam.goniometria.supinacion == "90"


def test_seed_runs_once(tmp_path: Path) -> None:
    async def count_records() -> int:
        store = _store(tmp_path)
        await store.open()
        found = await store.get_patient_with_records(patient_id="99888777")
        await store.close()
        return 0 if found is None else len(found.records)

    asyncio.run(seed_demo_patient_if_empty(store=_store(tmp_path)))
    asyncio.run(seed_demo_patient_if_empty(store=_store(tmp_path)))

    assert asyncio.run(count_records()) == 1
