from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "LAW_TRENDS_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def resolve_log_level(level: str | None = None) -> str:
    """Explicit level, else LAW_TRENDS_LOG_LEVEL, else INFO; unknown names fall back to INFO."""
    candidate = (level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
    if isinstance(logging.getLevelName(candidate), int):
        return candidate
    return DEFAULT_LOG_LEVEL


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=resolve_log_level(level), format=LOG_FORMAT)
