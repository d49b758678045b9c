"""Structured JSON logging for detector, analyzer and session events."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

FALLBACK_DIR = "/tmp"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; session fields come from ``extra=``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "event_type": getattr(record, "event_type", "log"),
            "state": getattr(record, "state", None),
            "session_id": getattr(record, "session_id", None),
            "message": record.getMessage(),
            "metadata": getattr(record, "metadata", {}),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def get_logger(
    name: str = "fluency",
    primary_path: str = "/var/log/fluency.log",
    level: int = logging.INFO,
) -> logging.Logger:
    """Return the application logger; child loggers such as ``fluency.vad`` share its handler."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    try:
        handler = logging.FileHandler(primary_path)
    except (OSError, PermissionError):
        fallback = Path(FALLBACK_DIR) / f"{name}.log"
        print(f"[{name}] warning: cannot open {primary_path}; falling back to {fallback}")
        fallback.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(fallback)

    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger
