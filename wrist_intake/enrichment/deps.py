from __future__ import annotations

from fastapi import Depends

from wrist_intake.core.llm.deps import get_openai_client
from wrist_intake.core.llm.openai_client import OpenAIClient
from wrist_intake.core.settings import get_settings
from wrist_intake.enrichment.bridge import EnrichmentBridge


def get_enrichment_bridge(
    openai_client: OpenAIClient | None = Depends(get_openai_client),
) -> EnrichmentBridge:
    settings = get_settings()
    return EnrichmentBridge(
        llm_client=openai_client,
        max_prompt_chars=int(settings.openai_max_prompt_chars),
        summary_temperature=float(settings.summary_temperature),
        cif_temperature=float(settings.cif_temperature),
    )
