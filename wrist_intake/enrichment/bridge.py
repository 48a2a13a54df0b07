from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Protocol

from wrist_intake.core.llm.openai_client import InlineImage
from wrist_intake.core.metrics import record_enrichment_outcome
from wrist_intake.enrichment.prompt import (
    build_cif_prompts,
    build_radiograph_prompts,
    build_summary_prompts,
)
from wrist_intake.enrichment.result import EnrichmentResult
from wrist_intake.enrichment.schemas import CIF_PROFILE_JSON_SCHEMA, _LLMCIFProfileJSON
from wrist_intake.patients.records.schemas import CIFProfile, ClinicalRecordOut
from wrist_intake.patients.schemas import ClinicalData, FiliatoriosData

logger = logging.getLogger("wrist_intake.enrichment")

# User-facing messages (shown as-is by the intake UI).
NOT_CONFIGURED = "Error: El servicio de IA no está configurado."
SUMMARY_FAILED = (
    "Error: No se pudo generar el resumen. Por favor, verifique la configuración de la API "
    "y su conexión a internet."
)
IMAGE_MISSING = "Error: No se proporcionó imagen para interpretar."
IMAGE_INVALID = "Error: Formato de imagen inválido."
INTERPRETATION_FAILED = (
    "Error: No se pudo interpretar la imagen. Verifique la calidad de la imagen y su conexión."
)
CIF_FAILED = "Hubo un error al generar el perfil CIF. Por favor, intente de nuevo."
CIF_EMPTY = "La IA no pudo generar un perfil CIF con los datos proporcionados."


class LLMClient(Protocol):
    async def generate_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        image: InlineImage | None = None,
        temperature: float = 0.0,
    ) -> str: ...

    async def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "response",
        temperature: float = 0.0,
    ) -> dict[str, Any]: ...


def parse_inline_image(*, image_base64: str, image_type: str = "") -> InlineImage | None:
    """
    Accept a data URL (`data:image/png;base64,...`) or bare base64 plus a MIME type.

    Returns None when the payload is not a base64-encoded image.
    """

    payload = image_base64.strip()
    mime_type = image_type.strip().lower()

    if payload.startswith("data:"):
        header, sep, payload = payload.partition(",")
        if not sep or not header.endswith(";base64"):
            return None
        mime_type = header[len("data:") : -len(";base64")].strip().lower() or mime_type

    if not mime_type.startswith("image/") or not payload:
        return None

    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None

    return InlineImage(mime_type=mime_type, data_base64=payload)


class EnrichmentBridge:
    """
    On-demand AI enrichment of a clinical record.

    Safety:
    - Prompts and model outputs are never logged.
    - Every failure becomes a failed EnrichmentResult with a fixed message;
      callers decide how to surface it.
    """

    def __init__(
        self,
        *,
        llm_client: LLMClient | None,
        max_prompt_chars: int,
        summary_temperature: float = 0.5,
        cif_temperature: float = 0.1,
    ):
        self._llm = llm_client
        self._max_prompt_chars = max_prompt_chars
        self._summary_temperature = summary_temperature
        self._cif_temperature = cif_temperature

    def _finish(
        self,
        *,
        kind: str,
        result: EnrichmentResult[Any],
        exc: BaseException | None = None,
    ) -> None:
        record_enrichment_outcome(kind=kind, ok=result.ok)
        extra: dict[str, Any] = {"enrichment": kind, "success": result.ok}
        if exc is not None:
            extra["error"] = type(exc).__name__
        if result.ok:
            logger.info("Enrichment completed", extra=extra)
        else:
            logger.info("Enrichment failed", extra=extra)

    async def generate_summary(self, *, data: ClinicalData) -> EnrichmentResult[str]:
        kind = "summary"
        if self._llm is None:
            result: EnrichmentResult[str] = EnrichmentResult.failure(NOT_CONFIGURED)
            self._finish(kind=kind, result=result)
            return result

        system_prompt, user_prompt = build_summary_prompts(
            data=data, max_chars=self._max_prompt_chars
        )
        try:
            text = await self._llm.generate_text(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=self._summary_temperature,
            )
        except Exception as exc:  # noqa: BLE001
            result = EnrichmentResult.failure(SUMMARY_FAILED)
            self._finish(kind=kind, result=result, exc=exc)
            return result

        result = EnrichmentResult.success(text.strip())
        self._finish(kind=kind, result=result)
        return result

    async def interpret_radiograph(
        self, *, image_base64: str, image_type: str = ""
    ) -> EnrichmentResult[str]:
        kind = "radiograph"
        if not image_base64.strip():
            result: EnrichmentResult[str] = EnrichmentResult.failure(IMAGE_MISSING)
            self._finish(kind=kind, result=result)
            return result

        image = parse_inline_image(image_base64=image_base64, image_type=image_type)
        if image is None:
            result = EnrichmentResult.failure(IMAGE_INVALID)
            self._finish(kind=kind, result=result)
            return result

        if self._llm is None:
            result = EnrichmentResult.failure(NOT_CONFIGURED)
            self._finish(kind=kind, result=result)
            return result

        system_prompt, user_prompt = build_radiograph_prompts()
        try:
            text = await self._llm.generate_text(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                image=image,
                temperature=0.0,
            )
        except Exception as exc:  # noqa: BLE001
            result = EnrichmentResult.failure(INTERPRETATION_FAILED)
            self._finish(kind=kind, result=result, exc=exc)
            return result

        result = EnrichmentResult.success(text.strip())
        self._finish(kind=kind, result=result)
        return result

    async def generate_cif_profile(
        self, *, record: ClinicalRecordOut, filiatorios: FiliatoriosData
    ) -> EnrichmentResult[CIFProfile]:
        kind = "cif_profile"
        if self._llm is None:
            result: EnrichmentResult[CIFProfile] = EnrichmentResult.failure(NOT_CONFIGURED)
            self._finish(kind=kind, result=result)
            return result

        system_prompt, user_prompt = build_cif_prompts(
            record=record, filiatorios=filiatorios, max_chars=self._max_prompt_chars
        )
        try:
            llm_json = await self._llm.generate_json(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                json_schema=CIF_PROFILE_JSON_SCHEMA,
                schema_name="perfil_cif",
                temperature=self._cif_temperature,
            )
            parsed = _LLMCIFProfileJSON.model_validate(llm_json)
        except Exception as exc:  # noqa: BLE001
            result = EnrichmentResult.failure(CIF_FAILED)
            self._finish(kind=kind, result=result, exc=exc)
            return result

        profile = CIFProfile.model_validate(parsed.model_dump())
        if not profile.is_meaningful:
            result = EnrichmentResult.failure(CIF_EMPTY)
            self._finish(kind=kind, result=result)
            return result

        result = EnrichmentResult.success(profile)
        self._finish(kind=kind, result=result)
        return result
