from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from wrist_intake.core.db import Base


class ClinicalRecord(Base):
    """
    One saved intake for a patient.

    Each nested section lives in its own JSON text column so that a damaged
    column only loses that slice on read. Rows are append-only; `cif_profile`
    is the only column written after creation.
    """

    __tablename__ = "clinical_records"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[str] = mapped_column(Text, ForeignKey("patients.id"), nullable=False)
    # ISO-8601 UTC text, e.g. 2025-03-01T14:05:09.123Z
    created_at: Mapped[str] = mapped_column(Text, nullable=False)

    anamnesis_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    physical_exam_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    scales_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    radiology_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    cif_profile: Mapped[str | None] = mapped_column(Text, nullable=True)
