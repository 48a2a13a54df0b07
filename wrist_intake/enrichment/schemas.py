from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from wrist_intake.patients.records.schemas import CIFCode, CIFProfile


class SummaryOut(BaseModel):
    text: str = Field(description="Narrative summary and preliminary analysis.")


class RadiographInterpretationIn(BaseModel):
    image_base64: str = Field(
        description="Radiograph as a data URL (data:image/png;base64,...) or bare base64."
    )
    image_type: str = Field(
        default="",
        description="MIME type; taken from the data URL header when omitted.",
        examples=["image/png"],
    )


class RadiographInterpretationOut(BaseModel):
    interpretation: str = Field(description="Structured radiograph reading.")


_CIF_CODE_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "codigo": {"type": "string"},
        "descripcion": {"type": "string"},
        "calificador": {"type": "string"},
    },
    "required": ["codigo", "descripcion", "calificador"],
    "additionalProperties": False,
}

# Response schema sent with the CIF request (four required fields).
CIF_PROFILE_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "funciones_estructuras": {"type": "array", "items": _CIF_CODE_JSON_SCHEMA},
        "actividad_participacion": {"type": "array", "items": _CIF_CODE_JSON_SCHEMA},
        "factores_ambientales": {"type": "array", "items": _CIF_CODE_JSON_SCHEMA},
        "factores_personales": {"type": "string"},
    },
    "required": [
        "funciones_estructuras",
        "actividad_participacion",
        "factores_ambientales",
        "factores_personales",
    ],
    "additionalProperties": False,
}


class _LLMCIFProfileJSON(CIFProfile):
    """
    Internal schema for validating the LLM response payload.

    Same shape as CIFProfile but every field is required, so a response that
    drops a category is rejected instead of silently defaulting.
    """

    funciones_estructuras: list[CIFCode]
    actividad_participacion: list[CIFCode]
    factores_ambientales: list[CIFCode]
    factores_personales: str
