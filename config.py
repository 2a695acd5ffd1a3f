"""
FILE: config.py
----------------
Runtime settings resolved from environment variables.
Fixed statistical thresholds live in constants/, not here.

  STAT_ADVISOR_OFFLOAD_TIMEOUT   seconds before an offloaded test is abandoned (default 30)
  STAT_ADVISOR_OFFLOAD_ENABLED   "0"/"false"/"no" runs every test synchronously (default on)
  STAT_ADVISOR_CACHE_TTL         assumption-check cache lifetime in seconds (default 300)
  STAT_ADVISOR_LOG_LEVEL         logging level for the CLI (default WARNING)
"""

import os

from constants.assumption_checker import ASSUMPTION_CACHE_TTL_SECONDS


DEFAULT_OFFLOAD_TIMEOUT = 30.0


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def get_offload_timeout() -> float:
    return _float_env("STAT_ADVISOR_OFFLOAD_TIMEOUT", DEFAULT_OFFLOAD_TIMEOUT)


def get_offload_enabled() -> bool:
    return _bool_env("STAT_ADVISOR_OFFLOAD_ENABLED", True)


def get_cache_ttl() -> float:
    return _float_env("STAT_ADVISOR_CACHE_TTL", float(ASSUMPTION_CACHE_TTL_SECONDS))


def get_log_level() -> str:
    level = os.getenv("STAT_ADVISOR_LOG_LEVEL", "WARNING").strip().upper()
    return level or "WARNING"
