"""Structured JSON logging for the FastAPI app."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict

LOG_LEVEL = "INFO"

# Ambient per-request context, filled by the request middleware and the auth guard.
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
current_user_id: ContextVar[str | None] = ContextVar("user_id", default=None)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        if (request_id := request_id_ctx.get()) is not None:
            payload["request_id"] = request_id
        if (user_id := current_user_id.get()) is not None:
            payload["user_id"] = user_id
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging() -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.setLevel(LOG_LEVEL)
    root.addHandler(handler)


logger = logging.getLogger("sidestore_id")
