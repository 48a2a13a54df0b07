from __future__ import annotations

from wrist_intake.domain.exceptions import BusinessValidationError
from wrist_intake.patients.records.mapper import dump_cif_profile
from wrist_intake.patients.records.schemas import CIFProfile, ClinicalRecordOut
from wrist_intake.patients.schemas import PatientDetailOut
from wrist_intake.patients.store import ClinicalStore


def find_record(*, detail: PatientDetailOut, record_id: int) -> ClinicalRecordOut | None:
    for record in detail.clinical_records:
        if record.id == record_id:
            return record
    return None


async def apply_cif_profile(
    *,
    store: ClinicalStore,
    record: ClinicalRecordOut,
    profile: CIFProfile,
) -> ClinicalRecordOut | None:
    """
    Replace the whole profile of one record.

    Returns the record with the new profile, or None when the row no longer exists.
    """

    if not profile.is_meaningful:
        raise BusinessValidationError("El perfil CIF no contiene datos.")

    matched = await store.update_cif_profile(
        record_id=record.id, cif_profile=dump_cif_profile(profile)
    )
    if not matched:
        return None
    return record.model_copy(update={"cif_profile": profile})
