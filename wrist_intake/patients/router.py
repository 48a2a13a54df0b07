from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from wrist_intake.patients.deps import get_clinical_store
from wrist_intake.patients.export.router import router as patient_export_router
from wrist_intake.patients.records.router import router as clinical_records_router
from wrist_intake.patients.schemas import (
    ClinicalRecordCreate,
    ClinicalRecordSavedOut,
    PatientDetailOut,
    PatientListItemOut,
)
from wrist_intake.patients.service import get_patient_detail, list_patients, save_clinical_record
from wrist_intake.patients.store import ClinicalStore

router = APIRouter(prefix="/patients", tags=["patients"])
router.include_router(clinical_records_router)
router.include_router(patient_export_router)


@router.get("", response_model=list[PatientListItemOut])
async def get_patients(
    store: ClinicalStore = Depends(get_clinical_store),
) -> list[PatientListItemOut]:
    return await list_patients(store=store)


@router.post(
    "/records",
    status_code=status.HTTP_201_CREATED,
    response_model=ClinicalRecordSavedOut,
)
async def create_clinical_record(
    payload: ClinicalRecordCreate,
    store: ClinicalStore = Depends(get_clinical_store),
) -> ClinicalRecordSavedOut:
    """
    Save one intake submission.

    The patient is identified by `filiatorios.dni`: created on first submission,
    demographics overwritten on later ones. A new clinical record is always appended.
    """

    return await save_clinical_record(store=store, payload=payload)


@router.get("/{patient_id}", response_model=PatientDetailOut)
async def get_patient_by_id(
    patient_id: str,
    store: ClinicalStore = Depends(get_clinical_store),
) -> PatientDetailOut:
    detail = await get_patient_detail(store=store, patient_id=patient_id)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return detail

