from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from wrist_intake.patients.records.schemas import (
    AnamnesisData,
    ClinicalRecordOut,
    PhysicalExamData,
    RadiologyData,
    ScalesData,
)


class FiliatoriosData(BaseModel):
    """Patient demographic and contact data."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    nombre: str = ""
    apellido: str = ""
    fecha_nacimiento: str = Field(default="", description="Birth date (YYYY-MM-DD).")
    edad: str = Field(default="", description="Age in years; derived from the birth date on save.")
    nacionalidad: str = ""
    estado_civil: str = ""
    dni: str = Field(default="", description="National identification number; patient key.")
    obra_social: str = ""
    domicilio: str = ""
    localidad: str = ""
    partido: str = ""
    telefono: str = ""
    actividades_anteriores: str = ""
    actividades_actuales: str = ""
    deportes_anteriores: str = ""
    deportes_actuales: str = ""


class ClinicalData(BaseModel):
    """Complete intake form content (as collected, before the summary step)."""

    filiatorios: FiliatoriosData = Field(default_factory=FiliatoriosData)
    anamnesis: AnamnesisData = Field(default_factory=AnamnesisData)
    physical_exam: PhysicalExamData = Field(default_factory=PhysicalExamData)
    radiology: RadiologyData = Field(default_factory=RadiologyData)
    scales: ScalesData = Field(default_factory=ScalesData)


class ClinicalRecordCreate(ClinicalData):
    summary: str = Field(
        default="",
        description="Narrative summary (usually produced by POST /enrichment/summary).",
    )


class ClinicalRecordSavedOut(BaseModel):
    patient_id: str = Field(description="Patient identifier (DNI).")
    record_id: int = Field(description="Identifier of the newly appended clinical record.")
    created_at: str = Field(description="Creation timestamp of the record (ISO 8601, UTC).")


class PatientListItemOut(BaseModel):
    id: str = Field(description="Patient identifier (DNI).")
    filiatorios: FiliatoriosData


class PatientDetailOut(BaseModel):
    id: str = Field(description="Patient identifier (DNI).")
    filiatorios: FiliatoriosData
    clinical_records: list[ClinicalRecordOut] = Field(
        default_factory=list, description="Clinical records, newest first."
    )
