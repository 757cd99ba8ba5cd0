"""Defaults for gpuquery, overridable by environment then by CLI flags."""

from __future__ import annotations

import math
import os

from loguru import logger

# ---- defaults ----
INTERVAL_S = 1.0
MIN_INTERVAL_S = 0.1
MAX_INTERVAL_S = 3600.0
GPU_INDEX = 0
NAME_SOURCES = ("table", "procfs")
NAME_SOURCE = "table"


def _env_number(key: str, default, cast):
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring malformed {}={!r}; using {}", key, raw, default)
        return default


def interval(raw: str) -> float:
    """Parse a refresh interval in seconds; inf and nan are rejected."""
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"interval must be a finite number of seconds, got {raw!r}")
    return value


def default_interval() -> float:
    return _env_number("GPUQUERY_INTERVAL", INTERVAL_S, interval)


def default_gpu_index() -> int:
    return _env_number("GPUQUERY_GPU_INDEX", GPU_INDEX, int)


def default_mock() -> bool:
    return os.environ.get("MOCK_MODE") == "1"


def default_name_source() -> str:
    source = os.environ.get("GPUQUERY_NAMES", NAME_SOURCE)
    if source not in NAME_SOURCES:
        logger.warning("Ignoring unknown GPUQUERY_NAMES={!r}; using {}", source, NAME_SOURCE)
        return NAME_SOURCE
    return source


def clamp_interval(seconds: float) -> float:
    """Keep the refresh interval within [MIN_INTERVAL_S, MAX_INTERVAL_S]."""
    if math.isnan(seconds):
        return INTERVAL_S
    return min(MAX_INTERVAL_S, max(MIN_INTERVAL_S, seconds))
