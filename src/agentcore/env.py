"""
Environment helpers: a small .env loader and typed variable readers.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


def load_env_if_present(candidate_paths: Iterable[Path]) -> Optional[Path]:
    """
    Load key=value pairs from the first .env-style file that exists.

    Variables already set in the process environment are never overwritten.

    Returns:
        The path that was loaded, or None if no candidate existed.
    """
    for env_path in candidate_paths:
        if not env_path.exists() or not env_path.is_file():
            continue
        try:
            lines = env_path.read_text().splitlines()
        except OSError as exc:
            logger.debug("skipping unreadable env file %s: %s", env_path, exc)
            continue
        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            key = key.strip()
            value = value.strip().strip("'\"")
            if key and key not in os.environ:
                os.environ[key] = value
        return env_path
    return None


def load_default_env() -> Optional[Path]:
    """Load from common locations: cwd/.env and project root .env."""
    cwd = Path.cwd()
    default_candidates = [
        cwd / ".env",
        Path(__file__).resolve().parents[2] / ".env",
    ]
    return load_env_if_present(default_candidates)


def env_int(name: str, default: int) -> int:
    """Read an integer variable, falling back to ``default`` when unset or malformed."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer", name, raw)
        return default


def env_float(name: str, default: float) -> float:
    """Read a float variable, falling back to ``default`` when unset or malformed."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not a number", name, raw)
        return default


__all__ = ["load_default_env", "load_env_if_present", "env_int", "env_float"]
