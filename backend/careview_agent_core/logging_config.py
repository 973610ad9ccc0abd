"""Structured logging setup shared by the reasoning core and the HTTP app."""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, MutableMapping

from .time_utils import to_iso, utc_now


class StructuredFormatter(logging.Formatter):
    """Render each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": to_iso(utc_now()),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_fields"):
            log_dict.update(record.extra_fields)
        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_dict, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter that moves ``extra`` kwargs into a single structured field."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = {"extra_fields": extra}
        return msg, kwargs


_configured = False


def configure_logging(level: int | str | None = None, structured: bool | None = None) -> None:
    global _configured
    if _configured:
        return

    if level is None:
        level = os.getenv("CAREVIEW_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if structured is None:
        structured = os.getenv("CAREVIEW_LOG_FORMAT", "json").strip().lower() != "text"

    root_logger = logging.getLogger("careview")
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)
    _configured = True


def get_logger(name: str, **extra: Any) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(f"careview.{name}"), extra)
