"""
Apply log level from config or env.

Single log level for all loggers. An explicit level (from AgentConfig or the
--log-level flag) takes precedence over RUNNER_LOG_LEVEL env.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_level(raw: str) -> int:
    if not raw or not str(raw).strip():
        return logging.INFO
    raw = str(raw).strip().upper()
    if raw.isdigit():
        return int(raw)
    level = getattr(logging, raw, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def resolve_level(explicit: Optional[str] = None) -> int:
    if explicit:
        return _parse_level(explicit)
    raw = os.environ.get("RUNNER_LOG_LEVEL", "").strip()
    return _parse_level(raw) if raw else logging.INFO


def configure_logging(explicit: Optional[str] = None) -> None:
    """Install the root handler once, then set the root level."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolve_level(explicit))
