"""Tagged, single-line logging for the API, relay and Celery workers.

Lines look like:
    2026-03-02T01:15:00Z | INFO | rid=3f9a1c2e | REALTIME | Client connected | {"sppg_id": "sppg-01"}

``rid`` appears only inside an HTTP request. Structured data goes in
``extra={"data": {...}}`` and has secret-looking keys masked before it
is serialized.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from bergizi.common.config import get_settings

MODULE_TAGS = frozenset(
    {
        "SYSTEM",
        "API",
        "REALTIME",
        "NUTRITION",
        "DASHBOARD",
        "INVENTORY",
        "NOTIFY",
        "CACHE",
        "TEST",
    }
)

SECRET_WORDS = ("password", "token", "secret", "key", "credential")
REDACTED = "[REDACTED]"

# Set per request by RequestIdMiddleware.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_SECRET_PAIR = re.compile(
    r'"([^"]*(?:' + "|".join(SECRET_WORDS) + r')[^"]*)":\s*"([^"]*)"',
    re.IGNORECASE,
)


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(word in lowered for word in SECRET_WORDS)


def _mask(value: Any) -> Any:
    """Recursively replace values stored under secret-looking keys."""
    if isinstance(value, dict):
        return {
            k: REDACTED if isinstance(k, str) and _is_secret(k) else _mask(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_mask(v) for v in value]
    return value


def _redact_secrets(text: str) -> str:
    """Mask ``"secret_key": "value"`` pairs embedded in free text."""
    return _SECRET_PAIR.sub(rf'"\1": "{REDACTED}"', text)


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [
            datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            record.levelname,
        ]
        rid = request_id_var.get()
        if rid:
            parts.append(f"rid={rid[:8]}")
        parts.append(getattr(record, "module_tag", "SYSTEM"))
        parts.append(_redact_secrets(record.getMessage()))

        data = getattr(record, "data", None)
        if data is not None:
            try:
                parts.append(json.dumps(_mask(data), default=str))
            except (TypeError, ValueError):
                parts.append(_redact_secrets(str(data)))

        return " | ".join(parts)


class ModuleTagLogger(logging.LoggerAdapter):
    """Adapter that stamps every record with its module tag."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**kwargs.get("extra", {}), "module_tag": self.extra["module_tag"]}
        return msg, kwargs


_loggers: dict[str, ModuleTagLogger] = {}


def get_logger(module_tag: str) -> ModuleTagLogger:
    """Return the shared adapter for ``module_tag``, creating it on first use.

    The underlying ``bergizi.<tag>`` logger writes to stdout at the
    configured ``log_level`` and does not propagate to the root logger.
    """
    if module_tag in _loggers:
        return _loggers[module_tag]

    logger = logging.getLogger(f"bergizi.{module_tag.lower()}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(get_settings().log_level.upper())
        logger.propagate = False

    adapter = ModuleTagLogger(logger, {"module_tag": module_tag})
    _loggers[module_tag] = adapter
    return adapter
