"""Store-level tests: each test drives one ClinicalStore inside a single event loop."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from wrist_intake.core.blob_storage import LocalBlobStorage, decode_image, encode_image
from wrist_intake.domain.exceptions import StoreInitializationError, StoreUnavailableError
from wrist_intake.patients.records.mapper import RecordColumns
from wrist_intake.patients.store import ClinicalStore, format_timestamp

IMAGE_KEY = "clinical_records_db.sqlite"


def _columns(summary: str = "") -> RecordColumns:
    return RecordColumns(
        anamnesis_data='{"diagnostico_medico": "Fractura de radio distal"}',
        physical_exam_data="{}",
        scales_data="{}",
        radiology_data="{}",
        summary=summary,
    )


class _StepClock:
    def __init__(self, start: datetime):
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now = current + timedelta(seconds=1)
        return current


def _store(tmp_path: Path, **kwargs) -> ClinicalStore:
    return ClinicalStore(
        blob_storage=LocalBlobStorage(base_dir=tmp_path), image_key=IMAGE_KEY, **kwargs
    )


def test_open_creates_and_persists_empty_database(tmp_path: Path) -> None:
    async def run() -> None:
        store = _store(tmp_path)
        await store.open()
        assert store.is_open
        assert await store.list_patients() == []
        await store.close()

    asyncio.run(run())

    saved = (tmp_path / IMAGE_KEY).read_text(encoding="utf-8")
    connection = sqlite3.connect(":memory:")
    connection.deserialize(decode_image(saved))
    tables = {row[0] for row in connection.execute("SELECT name FROM sqlite_master")}
    connection.close()
    assert {"patients", "clinical_records"} <= tables


def test_format_timestamp_uses_milliseconds_and_z_suffix() -> None:
    value = datetime(2025, 3, 1, 14, 5, 9, 123456, tzinfo=UTC)
    assert format_timestamp(value) == "2025-03-01T14:05:09.123Z"


def test_two_saves_for_one_patient_keep_one_row_with_latest_demographics(tmp_path: Path) -> None:
    async def run() -> None:
        store = _store(tmp_path)
        await store.open()
        first = await store.save_clinical_record(
            patient_id="12345678", filiatorios_data='{"telefono": "111"}', columns=_columns()
        )
        second = await store.save_clinical_record(
            patient_id="12345678", filiatorios_data='{"telefono": "222"}', columns=_columns()
        )

        patients = await store.list_patients()
        assert [p.id for p in patients] == ["12345678"]
        assert patients[0].filiatorios_data == '{"telefono": "222"}'

        found = await store.get_patient_with_records(patient_id="12345678")
        assert found is not None
        assert {r.id for r in found.records} == {first.id, second.id}
        assert all(r.patient_id == "12345678" for r in found.records)
        await store.close()

    asyncio.run(run())


def test_records_are_returned_newest_first(tmp_path: Path) -> None:
    clock = _StepClock(datetime(2025, 1, 1, 9, 0, 0, tzinfo=UTC))

    async def run() -> None:
        store = _store(tmp_path, clock=clock)
        await store.open()
        for summary in ("T1", "T2", "T3"):
            await store.save_clinical_record(
                patient_id="1", filiatorios_data="{}", columns=_columns(summary=summary)
            )
        found = await store.get_patient_with_records(patient_id="1")
        assert found is not None
        assert [r.summary for r in found.records] == ["T3", "T2", "T1"]
        await store.close()

    asyncio.run(run())


def test_records_with_equal_timestamps_fall_back_to_id_order(tmp_path: Path) -> None:
    fixed = datetime(2025, 1, 1, tzinfo=UTC)

    async def run() -> None:
        store = _store(tmp_path, clock=lambda: fixed)
        await store.open()
        a = await store.save_clinical_record(patient_id="1", filiatorios_data="{}", columns=_columns())
        b = await store.save_clinical_record(patient_id="1", filiatorios_data="{}", columns=_columns())
        found = await store.get_patient_with_records(patient_id="1")
        assert found is not None
        assert [r.id for r in found.records] == [b.id, a.id]
        await store.close()

    asyncio.run(run())


def test_unknown_patient_reads_as_none(tmp_path: Path) -> None:
    async def run() -> None:
        store = _store(tmp_path)
        await store.open()
        assert await store.get_patient_with_records(patient_id="nope") is None
        await store.close()

    asyncio.run(run())


def test_profile_update_touches_only_the_target_record(tmp_path: Path) -> None:
    async def run() -> None:
        store = _store(tmp_path)
        await store.open()
        target = await store.save_clinical_record(
            patient_id="1", filiatorios_data="{}", columns=_columns(summary="target")
        )
        other = await store.save_clinical_record(
            patient_id="1", filiatorios_data="{}", columns=_columns(summary="other")
        )

        assert await store.update_cif_profile(record_id=target.id, cif_profile='{"x": 1}')
        assert not await store.update_cif_profile(record_id=9999, cif_profile='{"x": 1}')

        found = await store.get_patient_with_records(patient_id="1")
        assert found is not None
        by_id = {r.id: r for r in found.records}
        assert by_id[target.id].cif_profile == '{"x": 1}'
        assert by_id[target.id].summary == "target"
        assert by_id[target.id].anamnesis_data == target.anamnesis_data
        assert by_id[target.id].created_at == target.created_at
        assert by_id[other.id].cif_profile is None
        await store.close()

    asyncio.run(run())


def test_reopen_sees_persisted_mutations(tmp_path: Path) -> None:
    async def write() -> int:
        store = _store(tmp_path)
        await store.open()
        saved = await store.save_clinical_record(
            patient_id="1", filiatorios_data="{}", columns=_columns()
        )
        await store.update_cif_profile(record_id=saved.id, cif_profile='{"y": 2}')
        await store.close()
        return saved.id

    async def read(record_id: int) -> None:
        store = _store(tmp_path)
        await store.open()
        found = await store.get_patient_with_records(patient_id="1")
        assert found is not None
        assert [(r.id, r.cif_profile) for r in found.records] == [(record_id, '{"y": 2}')]
        await store.close()

    record_id = asyncio.run(write())
    asyncio.run(read(record_id))


def test_image_without_profile_column_is_upgraded_on_open(tmp_path: Path) -> None:
    legacy = sqlite3.connect(":memory:")
    legacy.executescript(
        """
        CREATE TABLE patients (id TEXT PRIMARY KEY NOT NULL, filiatorios_data TEXT NOT NULL);
        CREATE TABLE clinical_records (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            patient_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            anamnesis_data TEXT,
            physical_exam_data TEXT,
            scales_data TEXT,
            radiology_data TEXT,
            summary TEXT,
            FOREIGN KEY (patient_id) REFERENCES patients (id)
        );
        INSERT INTO patients VALUES ('555', '{"nombre": "Ana"}');
        INSERT INTO clinical_records
            (patient_id, created_at, anamnesis_data, physical_exam_data, scales_data,
             radiology_data, summary)
            VALUES ('555', '2024-01-01T00:00:00.000Z', '{}', '{}', '{}', '{}', 'previo');
        """
    )
    (tmp_path / IMAGE_KEY).write_text(encode_image(legacy.serialize()), encoding="utf-8")
    legacy.close()

    async def run() -> None:
        store = _store(tmp_path)
        await store.open()
        found = await store.get_patient_with_records(patient_id="555")
        assert found is not None
        assert [(r.summary, r.cif_profile) for r in found.records] == [("previo", None)]
        assert await store.update_cif_profile(record_id=found.records[0].id, cif_profile="{}")
        await store.close()

    asyncio.run(run())

    upgraded = sqlite3.connect(":memory:")
    upgraded.deserialize(decode_image((tmp_path / IMAGE_KEY).read_text(encoding="utf-8")))
    columns = {row[1] for row in upgraded.execute("PRAGMA table_info(clinical_records)")}
    upgraded.close()
    assert "cif_profile" in columns


@pytest.mark.parametrize("saved", ["not json", '{"a": 1}', "[1, 2, 3]"])
def test_unreadable_image_fails_initialization(tmp_path: Path, saved: str) -> None:
    (tmp_path / IMAGE_KEY).write_text(saved, encoding="utf-8")

    async def run() -> None:
        store = _store(tmp_path)
        with pytest.raises(StoreInitializationError):
            await store.open()
        assert not store.is_open

    asyncio.run(run())
    # The broken image is left in place for inspection.
    assert (tmp_path / IMAGE_KEY).read_text(encoding="utf-8") == saved


def test_operations_on_closed_store_raise(tmp_path: Path) -> None:
    async def run() -> None:
        store = _store(tmp_path)
        with pytest.raises(StoreUnavailableError):
            await store.list_patients()

    asyncio.run(run())
