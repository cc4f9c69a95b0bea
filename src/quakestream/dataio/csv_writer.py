"""CSV and atomic file writing helpers for event history."""

from __future__ import annotations

import csv
import io
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Sequence

from ..core.models import EventRecord

EXPORT_HEADERS = ("Timestamp", "MaxIntensity", "MaxGal", "MaxLPGMClass", "MaxSva")


def atomic_write_text(path: Path, text: str) -> None:
    """
    Write ``text`` to ``path`` via a temporary sibling file and ``os.replace``.

    Readers see either the old file or the complete new one, never a
    partial write. Directories are created as needed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def event_row(event: EventRecord) -> List[str]:
    """Format one event as an export row (intensity 3 dp, gal and SVA 2 dp)."""
    return [
        event.formatted_timestamp,
        f"{event.max_intensity:.3f}",
        f"{event.max_gal:.2f}",
        str(int(event.max_lpgm_class)),
        f"{event.max_sva:.2f}",
    ]


def write_rows(path: Path, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    """Write a header row and all data rows to a CSV file atomically."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    atomic_write_text(path, buffer.getvalue())


def write_events(path: Path, events: Iterable[EventRecord]) -> None:
    """Export ``events`` in the order given, one row each, under :data:`EXPORT_HEADERS`."""
    write_rows(path, EXPORT_HEADERS, (event_row(event) for event in events))
