"""Structured logging helpers: JSON lines with context."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

T = TypeVar("T")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        variant = getattr(record, "variant", None)
        if variant is not None:
            payload["variant"] = variant
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


ROOT_LOGGER = "tracewire"


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    # one handler on the package root; module loggers propagate to it
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    return logging.getLogger(name)


def info(logger: logging.Logger, message: Callable[[], str]) -> None:
    """Log at INFO, building the message only when INFO is enabled."""
    if logger.isEnabledFor(logging.INFO):
        logger.info(message())


def with_logging(logger: logging.Logger, var_name: str, fn: Callable[[], T]) -> T | None:
    """Run an optional lookup, logging instead of raising when it fails.

    Used for host tasks that only exist for some host versions or variant
    shapes (e.g. the pre-bundle task when minification is off).
    """
    try:
        result = fn()
    except Exception as exc:  # noqa: BLE001 - lookup failures are non-fatal here
        logger.error("Failed to look up %s: %s", var_name, exc)
        return None
    logger.info("%s is %s", var_name, getattr(result, "name", result))
    return result
