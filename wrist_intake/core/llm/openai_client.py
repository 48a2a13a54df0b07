from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx


class OpenAIError(Exception):
    """Base error for OpenAI client failures."""


class OpenAIUpstreamError(OpenAIError):
    """Raised when OpenAI API fails or returns an unexpected response."""


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    base_url: str
    model: str
    timeout_seconds: float


@dataclass(frozen=True)
class InlineImage:
    """Image sent inline with a prompt (base64 payload without the data-URL header)."""

    mime_type: str
    data_base64: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data_base64}"


class OpenAIClient:
    """
    Minimal client for an OpenAI-compatible chat completions API.

    Design notes:
    - No logging in this module (prompts/outputs contain clinical data).
    - Stateless requests; one HTTP client per call.
    - `generate_json` returns parsed JSON; callers validate it with pydantic.
    """

    def __init__(self, *, config: OpenAIConfig):
        self._config = config

    async def generate_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        image: InlineImage | None = None,
        temperature: float = 0.0,
    ) -> str:
        user_content: str | list[dict[str, Any]] = user_prompt
        if image is not None:
            user_content = [
                {"type": "image_url", "image_url": {"url": image.data_url}},
                {"type": "text", "text": user_prompt},
            ]

        payload: dict[str, Any] = {
            "model": self._config.model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        content = await self._complete(payload=payload)
        if not content.strip():
            raise OpenAIUpstreamError("LLM returned an empty response")
        return content

    async def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "response",
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        response_format: dict[str, Any] = {"type": "json_object"}
        if json_schema is not None:
            # Structured outputs: the API constrains generation to the schema
            # (still validated by the caller).
            response_format = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema, "strict": True},
            }

        payload: dict[str, Any] = {
            "model": self._config.model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": response_format,
        }
        content = await self._complete(payload=payload)

        try:
            parsed = json.loads(content)
        except ValueError as exc:
            raise OpenAIUpstreamError("LLM response was not valid JSON") from exc

        if not isinstance(parsed, dict):
            raise OpenAIUpstreamError("LLM response JSON must be an object")

        return parsed

    async def _complete(self, *, payload: dict[str, Any]) -> str:
        url = f"{self._config.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                resp = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise OpenAIUpstreamError("LLM request timed out") from exc
        except httpx.HTTPError as exc:
            raise OpenAIUpstreamError("LLM request failed") from exc

        if resp.status_code != 200:
            # Upstream error bodies may echo the prompt; keep them out of the exception.
            raise OpenAIUpstreamError("LLM service returned an error")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except Exception as exc:  # noqa: BLE001
            raise OpenAIUpstreamError("LLM response had an unexpected shape") from exc

        if not isinstance(content, str):
            raise OpenAIUpstreamError("LLM response content was not text")
        return content
