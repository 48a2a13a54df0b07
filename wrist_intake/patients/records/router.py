from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from wrist_intake.enrichment.bridge import EnrichmentBridge
from wrist_intake.enrichment.deps import get_enrichment_bridge
from wrist_intake.patients.deps import get_clinical_store
from wrist_intake.patients.records.schemas import CIFProfile, ClinicalRecordOut
from wrist_intake.patients.records.service import apply_cif_profile, find_record
from wrist_intake.patients.schemas import PatientDetailOut
from wrist_intake.patients.service import get_patient_detail
from wrist_intake.patients.store import ClinicalStore

router = APIRouter(prefix="/{patient_id}/records", tags=["clinical-records"])


async def _load_record(
    *, store: ClinicalStore, patient_id: str, record_id: int
) -> tuple[PatientDetailOut, ClinicalRecordOut]:
    detail = await get_patient_detail(store=store, patient_id=patient_id)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    record = find_record(detail=detail, record_id=record_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Clinical record not found"
        )
    return detail, record


async def _store_profile(
    *, store: ClinicalStore, record: ClinicalRecordOut, profile: CIFProfile
) -> ClinicalRecordOut:
    updated = await apply_cif_profile(store=store, record=record, profile=profile)
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Clinical record not found"
        )
    return updated


@router.put("/{record_id}/cif-profile", response_model=ClinicalRecordOut)
async def put_cif_profile(
    patient_id: str,
    record_id: int,
    payload: CIFProfile,
    store: ClinicalStore = Depends(get_clinical_store),
) -> ClinicalRecordOut:
    """Store a supplied CIF profile on one record, replacing any previous profile."""

    _, record = await _load_record(store=store, patient_id=patient_id, record_id=record_id)
    return await _store_profile(store=store, record=record, profile=payload)


@router.post("/{record_id}/cif-profile", response_model=ClinicalRecordOut)
async def generate_cif_profile(
    patient_id: str,
    record_id: int,
    store: ClinicalStore = Depends(get_clinical_store),
    bridge: EnrichmentBridge = Depends(get_enrichment_bridge),
) -> ClinicalRecordOut:
    """
    Generate a CIF profile from the stored record and attach it.

    On failure nothing is written; the previous profile (if any) stays as it was.
    """

    detail, record = await _load_record(store=store, patient_id=patient_id, record_id=record_id)
    result = await bridge.generate_cif_profile(record=record, filiatorios=detail.filiatorios)
    if not result.ok or result.value is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return await _store_profile(store=store, record=record, profile=result.value)
