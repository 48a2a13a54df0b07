from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from wrist_intake.enrichment.bridge import EnrichmentBridge
from wrist_intake.enrichment.deps import get_enrichment_bridge
from wrist_intake.enrichment.schemas import (
    RadiographInterpretationIn,
    RadiographInterpretationOut,
    SummaryOut,
)
from wrist_intake.patients.schemas import ClinicalData

router = APIRouter(prefix="/enrichment", tags=["enrichment"])


@router.post("/summary", response_model=SummaryOut)
async def generate_summary(
    payload: ClinicalData,
    bridge: EnrichmentBridge = Depends(get_enrichment_bridge),
) -> SummaryOut:
    """
    Generate a narrative summary for a form that has not been saved yet.

    Nothing is stored; the intake form keeps the text and sends it with the save.
    """

    result = await bridge.generate_summary(data=payload)
    if not result.ok or result.value is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return SummaryOut(text=result.value)


@router.post("/radiograph-interpretation", response_model=RadiographInterpretationOut)
async def interpret_radiograph(
    payload: RadiographInterpretationIn,
    bridge: EnrichmentBridge = Depends(get_enrichment_bridge),
) -> RadiographInterpretationOut:
    result = await bridge.interpret_radiograph(
        image_base64=payload.image_base64, image_type=payload.image_type
    )
    if not result.ok or result.value is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return RadiographInterpretationOut(interpretation=result.value)
