from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class EnrichmentResult(Generic[T]):
    """Outcome of one enrichment call: either a value or a user-facing error message."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, value: T) -> EnrichmentResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> EnrichmentResult[T]:
        return cls(error=error)
