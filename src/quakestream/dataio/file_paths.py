"""Helpers for constructing standard file paths."""

from __future__ import annotations

import os
import re
from datetime import datetime
from pathlib import Path

HISTORY_FILENAME = "history.json"
DEFAULT_EXPORT_PREFIX = "seismic_history"

# Allow only alphanumerics, underscore, dot, and dash.
_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def data_root() -> Path:
    """
    Directory for persisted state.

    ``QUAKESTREAM_DATA_ROOT`` overrides the default ``~/.quakestream``.
    """
    env_root = os.environ.get("QUAKESTREAM_DATA_ROOT")
    if env_root:
        return Path(env_root).expanduser()
    return Path.home() / ".quakestream"


def default_history_path() -> Path:
    return data_root() / HISTORY_FILENAME


def _sanitize_prefix(name: str) -> str:
    """
    Sanitize an export file prefix.

    - Replace disallowed characters with '_'.
    - Strip leading/trailing underscores.
    - Fall back to the default prefix if nothing remains.
    """
    cleaned = _FILENAME_RE.sub("_", name).strip("_")
    return cleaned or DEFAULT_EXPORT_PREFIX


def export_filename(prefix: str = DEFAULT_EXPORT_PREFIX, when: datetime | None = None) -> str:
    """
    Build a timestamped CSV name for a history export.

    Example: "seismic_history_20251204_1530.csv"
    """
    stamp = (when or datetime.now()).strftime("%Y%m%d_%H%M")
    return f"{_sanitize_prefix(prefix)}_{stamp}.csv"
