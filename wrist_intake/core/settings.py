from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "wrist-intake"
    app_env: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
        description="Runtime environment: development|production.",
    )

    # Durable storage for the serialized database image.
    storage_base_path: str = Field(
        default="./data",
        validation_alias=AliasChoices("STORAGE_BASE_PATH", "storage_base_path"),
        description="Directory holding the persisted database image (relative or absolute).",
    )
    database_image_key: str = Field(
        default="clinical_records_db.sqlite",
        min_length=1,
        validation_alias=AliasChoices("DATABASE_IMAGE_KEY", "database_image_key"),
        description="Blob key under which the whole database image is stored.",
    )

    # LLM integration (OpenAI-compatible chat completions API)
    # IMPORTANT (healthcare safety): keep configuration explicit and avoid implicit logging.
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
        description="OpenAI API key (required for the enrichment endpoints).",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("OPENAI_MODEL", "openai_model"),
        description="Model identifier used for summaries, radiograph reading and CIF profiles.",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
        description="Base URL for the API (override for proxies/emulators).",
    )
    openai_timeout_seconds: float = Field(
        default=60.0,
        ge=1.0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT_SECONDS", "openai_timeout_seconds"),
        description="Timeout for LLM requests (seconds).",
    )
    openai_max_prompt_chars: int = Field(
        default=20_000,
        ge=1_000,
        validation_alias=AliasChoices("OPENAI_MAX_PROMPT_CHARS", "openai_max_prompt_chars"),
        description="Soft cap for prompt size; longer clinical text is truncated.",
    )
    summary_temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=2.0,
        validation_alias=AliasChoices("SUMMARY_TEMPERATURE", "summary_temperature"),
        description="Sampling temperature for the narrative summary.",
    )
    cif_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        validation_alias=AliasChoices("CIF_TEMPERATURE", "cif_temperature"),
        description="Sampling temperature for CIF profile generation.",
    )

    # PDF export
    export_dpi: int = Field(
        default=150,
        ge=72,
        le=600,
        validation_alias=AliasChoices("EXPORT_DPI", "export_dpi"),
        description="Raster resolution of exported PDF pages.",
    )
    export_margin_mm: float = Field(
        default=10.0,
        ge=0.0,
        le=50.0,
        validation_alias=AliasChoices("EXPORT_MARGIN_MM", "export_margin_mm"),
        description="Page margin applied on every side of exported pages (mm).",
    )
    max_snapshot_upload_mb: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("MAX_SNAPSHOT_UPLOAD_MB", "max_snapshot_upload_mb"),
        description="Maximum size of an uploaded view snapshot for PDF export (MB).",
    )

    @property
    def max_snapshot_upload_bytes(self) -> int:
        return int(self.max_snapshot_upload_mb) * 1024 * 1024

    @property
    def is_development(self) -> bool:
        return str(self.app_env).strip().lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
