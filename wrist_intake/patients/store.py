"""Clinical store: patients and clinical records in an image-backed SQLite database.

The whole database lives in memory. Its serialized image is the unit of
durability: it is loaded once by `open()` and written back to blob storage after
every mutation. There is no partial-write recovery; a crash between a mutation
and its persist loses that mutation.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy import Engine, inspect, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from wrist_intake.core.blob_storage import BlobStorage, decode_image, encode_image
from wrist_intake.core.db import (
    Base,
    create_engine_for_connection,
    create_sessionmaker,
    open_memory_connection,
    serialize_connection,
)
from wrist_intake.core.metrics import store_persist_duration_seconds
from wrist_intake.domain.exceptions import (
    StorageIOError,
    StoreInitializationError,
    StoreUnavailableError,
)
from wrist_intake.patients.models import Patient
from wrist_intake.patients.records.mapper import RecordColumns
from wrist_intake.patients.records.models import ClinicalRecord

logger = logging.getLogger("wrist_intake.store")

T = TypeVar("T")

# Columns added after the first release; images saved before them are upgraded on open.
_ADDITIVE_COLUMNS: dict[str, dict[str, str]] = {
    "clinical_records": {"cif_profile": "TEXT"},
}


@dataclass(frozen=True)
class PatientWithRecords:
    patient: Patient
    # Newest first.
    records: list[ClinicalRecord]


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a `Z` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ClinicalStore:
    """
    Owns the in-memory database and its persisted image.

    Lifecycle: construct, `await open()`, use, `await close()`. Operations on a
    store that is not open raise StoreUnavailableError. Every operation runs the
    synchronous SQLite work in the threadpool while holding one lock, so the image
    is never touched by two operations at once.
    """

    def __init__(
        self,
        *,
        blob_storage: BlobStorage,
        image_key: str,
        clock: Callable[[], datetime] | None = None,
    ):
        self._blob_storage = blob_storage
        self._image_key = image_key
        self._clock = clock or _utcnow
        self._lock = asyncio.Lock()
        self._connection: sqlite3.Connection | None = None
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker[Session] | None = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    async def _run(self, fn: Callable[..., T], /, **kwargs: Any) -> T:
        async with self._lock:
            return await run_in_threadpool(fn, **kwargs)

    # Lifecycle

    async def open(self) -> None:
        await self._run(self._open_sync)

    async def close(self) -> None:
        await self._run(self._close_sync)

    def _open_sync(self) -> None:
        if self._connection is not None:
            return

        try:
            raw = self._blob_storage.read(key=self._image_key)
        except StorageIOError as exc:
            raise StoreInitializationError("Could not read the saved database image") from exc

        try:
            image = decode_image(raw) if raw is not None else None
            connection = open_memory_connection(image=image)
        except (ValueError, sqlite3.Error) as exc:
            raise StoreInitializationError("Saved database image is not readable") from exc

        engine = create_engine_for_connection(connection=connection)
        try:
            schema_changed = self._ensure_schema(engine=engine)
        except (SQLAlchemyError, sqlite3.Error) as exc:
            engine.dispose()
            connection.close()
            raise StoreInitializationError("Saved database image is corrupt") from exc

        self._connection = connection
        self._engine = engine
        self._sessionmaker = create_sessionmaker(engine=engine)

        if raw is None:
            logger.info("Created new clinical database")
        if raw is None or schema_changed:
            try:
                self._persist_sync()
            except StorageIOError as exc:
                self._close_sync()
                raise StoreInitializationError("Could not persist the database image") from exc

    def _ensure_schema(self, *, engine: Engine) -> bool:
        """Create missing tables and add missing columns. Returns True when anything changed."""

        changed = False
        existing = set(inspect(engine).get_table_names())
        missing = [t for t in Base.metadata.sorted_tables if t.name not in existing]
        if missing:
            Base.metadata.create_all(engine, tables=missing)
            changed = True

        for table_name, columns in _ADDITIVE_COLUMNS.items():
            present = {c["name"] for c in inspect(engine).get_columns(table_name)}
            for column_name, ddl_type in columns.items():
                if column_name in present:
                    continue
                with engine.begin() as conn:
                    conn.execute(
                        text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {ddl_type}")
                    )
                logger.info(
                    "Upgraded database image: added column",
                    extra={"column": f"{table_name}.{column_name}"},
                )
                changed = True

        return changed

    def _close_sync(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._engine = None
        self._sessionmaker = None

    def _sessions(self) -> sessionmaker[Session]:
        if self._sessionmaker is None:
            raise StoreUnavailableError("Clinical store is not open")
        return self._sessionmaker

    # Persistence

    async def persist(self) -> None:
        await self._run(self._persist_sync)

    def _persist_sync(self) -> None:
        if self._connection is None:
            raise StoreUnavailableError("Clinical store is not open")
        started = time.perf_counter()
        image = serialize_connection(self._connection)
        self._blob_storage.write(key=self._image_key, text=encode_image(image))
        store_persist_duration_seconds.observe(time.perf_counter() - started)

    # Reads

    async def list_patients(self) -> list[Patient]:
        return await self._run(self._list_patients_sync)

    def _list_patients_sync(self) -> list[Patient]:
        # Ordered by the serialized demographics text, not by a parsed name.
        stmt = select(Patient).order_by(Patient.filiatorios_data, Patient.id)
        with self._sessions()() as session:
            return list(session.execute(stmt).scalars().all())

    async def get_patient_with_records(self, *, patient_id: str) -> PatientWithRecords | None:
        return await self._run(self._get_patient_with_records_sync, patient_id=patient_id)

    def _get_patient_with_records_sync(self, *, patient_id: str) -> PatientWithRecords | None:
        with self._sessions()() as session:
            patient = session.get(Patient, patient_id)
            if patient is None:
                return None
            stmt = (
                select(ClinicalRecord)
                .where(ClinicalRecord.patient_id == patient_id)
                .order_by(ClinicalRecord.created_at.desc(), ClinicalRecord.id.desc())
            )
            records = list(session.execute(stmt).scalars().all())
        return PatientWithRecords(patient=patient, records=records)

    # Mutations

    async def save_clinical_record(
        self,
        *,
        patient_id: str,
        filiatorios_data: str,
        columns: RecordColumns,
    ) -> ClinicalRecord:
        """Insert or overwrite the patient, append a new record, then persist."""

        return await self._run(
            self._save_clinical_record_sync,
            patient_id=patient_id,
            filiatorios_data=filiatorios_data,
            columns=columns,
        )

    def _save_clinical_record_sync(
        self,
        *,
        patient_id: str,
        filiatorios_data: str,
        columns: RecordColumns,
    ) -> ClinicalRecord:
        with self._sessions()() as session:
            patient = session.get(Patient, patient_id)
            if patient is None:
                session.add(Patient(id=patient_id, filiatorios_data=filiatorios_data))
                session.flush()
            else:
                patient.filiatorios_data = filiatorios_data

            record = ClinicalRecord(
                patient_id=patient_id,
                created_at=format_timestamp(self._clock()),
                **asdict(columns),
            )
            session.add(record)
            session.commit()

        self._persist_sync()
        logger.info("Clinical record saved", extra={"record_id": record.id})
        return record

    async def update_cif_profile(self, *, record_id: int, cif_profile: str) -> bool:
        """Overwrite only `cif_profile` on one record. Returns False when no row matched."""

        return await self._run(
            self._update_cif_profile_sync, record_id=record_id, cif_profile=cif_profile
        )

    def _update_cif_profile_sync(self, *, record_id: int, cif_profile: str) -> bool:
        stmt = (
            update(ClinicalRecord)
            .where(ClinicalRecord.id == record_id)
            .values(cif_profile=cif_profile)
        )
        with self._sessions()() as session:
            result = session.execute(stmt)
            session.commit()

        if result.rowcount == 0:
            return False

        self._persist_sync()
        logger.info("CIF profile stored", extra={"record_id": record_id})
        return True
