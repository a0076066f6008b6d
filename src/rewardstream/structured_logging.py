"""Structured logging — one JSON object per log line.

Standard-library logging only. Loggers are named under "rewardstream.*";
configure_logging() installs a single stream handler on the package
logger and is safe to call more than once.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Union

Json = Dict[str, Any]

PACKAGE_LOGGER = "rewardstream"


def _now_ms() -> int:
    return int(time.time() * 1000)


def configure_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Configure the package logger for JSONL output on stderr."""
    if isinstance(level, str):
        level = getattr(logging, level.strip().upper(), logging.INFO)

    root = logging.getLogger(PACKAGE_LOGGER)
    if getattr(root, "_rewardstream_configured", False):
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)
        return root

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers = [handler]
    root.setLevel(level)
    root.propagate = False
    setattr(root, "_rewardstream_configured", True)
    return root


def log_event(
    logger: logging.Logger,
    event: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit a single JSONL log event at `level`."""
    if not logger.isEnabledFor(level):
        return
    payload: Json = {"ts_ms": _now_ms(), "event": event}
    payload.update(fields)
    try:
        message = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        parts = [f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields.keys())]
        message = " ".join(parts)
    logger.log(level, message)
