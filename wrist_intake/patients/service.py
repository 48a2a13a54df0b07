from __future__ import annotations

from datetime import date

from wrist_intake.domain.exceptions import BusinessValidationError
from wrist_intake.patients.records.mapper import (
    dump_filiatorios,
    flatten_record,
    hydrate_record,
    load_filiatorios,
)
from wrist_intake.patients.schemas import (
    ClinicalRecordCreate,
    ClinicalRecordSavedOut,
    FiliatoriosData,
    PatientDetailOut,
    PatientListItemOut,
)
from wrist_intake.patients.store import ClinicalStore


def calculate_age(*, date_of_birth: date, today: date | None = None) -> int | None:
    """Whole years between the birth date and today; None for a future birth date."""

    today = today or date.today()
    if date_of_birth > today:
        return None
    years = today.year - date_of_birth.year
    # If birthday hasn't occurred yet this year, subtract one year.
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def normalize_patient_id(raw: str) -> str:
    patient_id = (raw or "").strip()
    if not patient_id:
        raise BusinessValidationError("El DNI del paciente es obligatorio.")
    return patient_id


def derive_filiatorios(
    filiatorios: FiliatoriosData, *, today: date | None = None
) -> FiliatoriosData:
    """
    Recompute `edad` from `fecha_nacimiento` when the birth date is a valid ISO date.

    Any other birth-date text keeps the submitted age untouched.
    """

    raw = filiatorios.fecha_nacimiento.strip()
    if not raw:
        return filiatorios
    try:
        born = date.fromisoformat(raw)
    except ValueError:
        return filiatorios

    age = calculate_age(date_of_birth=born, today=today)
    return filiatorios.model_copy(update={"edad": "" if age is None else str(age)})


async def list_patients(*, store: ClinicalStore) -> list[PatientListItemOut]:
    patients = await store.list_patients()
    return [
        PatientListItemOut(id=p.id, filiatorios=load_filiatorios(p.filiatorios_data))
        for p in patients
    ]


async def get_patient_detail(*, store: ClinicalStore, patient_id: str) -> PatientDetailOut | None:
    found = await store.get_patient_with_records(patient_id=patient_id)
    if found is None:
        return None
    return PatientDetailOut(
        id=found.patient.id,
        filiatorios=load_filiatorios(found.patient.filiatorios_data),
        clinical_records=[hydrate_record(r) for r in found.records],
    )


async def save_clinical_record(
    *,
    store: ClinicalStore,
    payload: ClinicalRecordCreate,
    today: date | None = None,
) -> ClinicalRecordSavedOut:
    """Upsert the patient identified by the submitted DNI and append a new record."""

    patient_id = normalize_patient_id(payload.filiatorios.dni)
    filiatorios = derive_filiatorios(payload.filiatorios, today=today).model_copy(
        update={"dni": patient_id}
    )

    record = await store.save_clinical_record(
        patient_id=patient_id,
        filiatorios_data=dump_filiatorios(filiatorios),
        columns=flatten_record(payload),
    )
    return ClinicalRecordSavedOut(
        patient_id=patient_id, record_id=record.id, created_at=record.created_at
    )
