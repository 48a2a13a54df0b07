"""Centralized logging configuration.

Logs are JSON lines on stdout. Clinical data never reaches a log record:
- no request/response bodies, query strings or headers
- no national ID (DNI), patient names or free-text clinical fields
- only opaque metadata such as record ids, route templates and outcome flags
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import UTC, datetime
from typing import Any

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Optional `extra` keys copied into the payload when present on a record.
_EXTRA_FIELDS = (
    "request_id",
    "status_code",
    "duration_ms",
    "record_id",
    "enrichment",
    "success",
    "column",
    "error",
)


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per record.

    Missing `extra` fields are rendered as null; a `'%(request_id)s'` style
    format string would raise for third-party records that lack them.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "method": getattr(record, "http_method", None),
            "path": getattr(record, "request_path", None),
        }
        for key in _EXTRA_FIELDS:
            payload[key] = getattr(record, key, None)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """Configure application logging (JSON to stdout)."""

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "wrist_intake.core.logging.JsonFormatter",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["default"],
            },
        }
    )
