"""Conversion between nested clinical sections and flat JSON text columns.

Each section is serialized and parsed on its own. On read, a null/empty column
yields the section's empty default, and a column that fails to parse or
validate does the same (with a warning), so one damaged slice never fails the
whole record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from wrist_intake.patients.records.models import ClinicalRecord
from wrist_intake.patients.records.schemas import (
    AnamnesisData,
    CIFProfile,
    ClinicalRecordOut,
    PhysicalExamData,
    RadiologyData,
    ScalesData,
)
from wrist_intake.patients.schemas import ClinicalRecordCreate, FiliatoriosData

logger = logging.getLogger("wrist_intake.records")

SectionT = TypeVar("SectionT", bound=BaseModel)


@dataclass(frozen=True)
class RecordColumns:
    """Text column values for a new `clinical_records` row."""

    anamnesis_data: str
    physical_exam_data: str
    scales_data: str
    radiology_data: str
    summary: str


def dump_section(section: BaseModel) -> str:
    return section.model_dump_json()


def load_section(
    model: type[SectionT],
    raw: str | None,
    *,
    column: str,
    record_id: int | None = None,
) -> SectionT:
    if raw is None or not raw.strip():
        return model()
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        # Never log the column content (clinical data); column name + record id only.
        logger.warning(
            "Stored section unreadable; substituting empty default",
            extra={"record_id": record_id, "column": column, "error": exc.__class__.__name__},
        )
        return model()


def dump_filiatorios(filiatorios: FiliatoriosData) -> str:
    return dump_section(filiatorios)


def load_filiatorios(raw: str | None) -> FiliatoriosData:
    return load_section(FiliatoriosData, raw, column="filiatorios_data")


def dump_cif_profile(profile: CIFProfile) -> str:
    return dump_section(profile)


def load_cif_profile(raw: str | None, *, record_id: int | None = None) -> CIFProfile | None:
    """Return the stored profile, or None when absent or unreadable."""

    if raw is None or not raw.strip():
        return None
    try:
        return CIFProfile.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "Stored CIF profile unreadable; treating as absent",
            extra={"record_id": record_id, "column": "cif_profile", "error": exc.__class__.__name__},
        )
        return None


def flatten_record(payload: ClinicalRecordCreate) -> RecordColumns:
    return RecordColumns(
        anamnesis_data=dump_section(payload.anamnesis),
        physical_exam_data=dump_section(payload.physical_exam),
        scales_data=dump_section(payload.scales),
        radiology_data=dump_section(payload.radiology),
        summary=payload.summary,
    )


def hydrate_record(row: ClinicalRecord) -> ClinicalRecordOut:
    return ClinicalRecordOut(
        id=row.id,
        created_at=row.created_at,
        anamnesis=load_section(
            AnamnesisData, row.anamnesis_data, column="anamnesis_data", record_id=row.id
        ),
        physical_exam=load_section(
            PhysicalExamData, row.physical_exam_data, column="physical_exam_data", record_id=row.id
        ),
        scales=load_section(ScalesData, row.scales_data, column="scales_data", record_id=row.id),
        radiology=load_section(
            RadiologyData, row.radiology_data, column="radiology_data", record_id=row.id
        ),
        summary=row.summary or "",
        cif_profile=load_cif_profile(row.cif_profile, record_id=row.id),
    )
