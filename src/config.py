"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
the settings used to wire the paced API client (base URL, token, pacing
interval, retries, HTTP timeouts) and logging.
"""

from __future__ import annotations

import os
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    raw = (os.environ.get(name) or "").strip()
    return raw or None


# Remote API
API_BASE_URL = os.environ.get("API_BASE_URL", "https://osu.ppy.sh/api/v2").strip()
API_TOKEN = _env_str("API_TOKEN")

# Pacing: seconds between the starts of two outbound requests
API_MIN_INTERVAL = _env_float("API_MIN_INTERVAL", 1.0)
API_MAX_RETRIES = _env_int("API_MAX_RETRIES", 2)
MAX_RETRY_SLEEP = _env_float("MAX_RETRY_SLEEP", 60.0)

# Network / HTTP
HTTP_TIMEOUT = _env_float("HTTP_TIMEOUT", 20.0)
HTTP_VERIFY = _env_bool("HTTP_VERIFY", True)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
