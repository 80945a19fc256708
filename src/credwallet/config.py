"""Environment-backed settings for the credwallet core and CLI."""

from __future__ import annotations

import logging
import os

TRUST_REGISTRY_ENV = "CREDWALLET_TRUST_REGISTRY"
LOG_LEVEL_ENV = "CREDWALLET_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def resolve_trust_registry_path(explicit: str | None = None) -> str | None:
    return explicit or os.environ.get(TRUST_REGISTRY_ENV) or None


def resolve_log_level(explicit: str | None = None) -> int:
    name = (explicit or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level
