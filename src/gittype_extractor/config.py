"""Environment-driven configuration."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from gittype_extractor.models import DEFAULT_MAX_FILE_SIZE_BYTES

ENV_WORKERS = "GITTYPE_WORKERS"
ENV_MAX_FILE_BYTES = "GITTYPE_MAX_FILE_BYTES"
ENV_LOG_LEVEL = "GITTYPE_LOG_LEVEL"

MAX_DEFAULT_WORKERS = 8


@dataclass(frozen=True)
class ExtractorConfig:
    workers: int
    max_file_size_bytes: int
    log_level: int


def _env_value(name: str) -> str:
    return (os.environ.get(name) or "").strip()


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = _env_value(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def default_workers() -> int:
    return max(1, min(MAX_DEFAULT_WORKERS, os.cpu_count() or 1))


def _log_level(name: str) -> int:
    raw = _env_value(name).upper() or "INFO"
    level = logging.getLevelName(raw)
    if not isinstance(level, int):
        raise ValueError(f"{name} must be a logging level name, got {raw!r}")
    return level


def load_config() -> ExtractorConfig:
    """Read ``GITTYPE_*`` variables.

    Raises:
        ValueError: naming the variable when a value is malformed.
    """
    return ExtractorConfig(
        workers=_env_int(ENV_WORKERS, default_workers(), minimum=1),
        max_file_size_bytes=_env_int(ENV_MAX_FILE_BYTES, DEFAULT_MAX_FILE_SIZE_BYTES, minimum=1),
        log_level=_log_level(ENV_LOG_LEVEL),
    )


__all__ = ["ExtractorConfig", "default_workers", "load_config"]
