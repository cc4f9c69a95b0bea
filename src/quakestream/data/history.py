"""Bounded, durable, newest-first history of detected seismic events."""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..core.models import EventRecord
from ..dataio import csv_writer
from ..dataio.file_paths import default_history_path
from ..tools.debug import time_block

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAPACITY = 200


def event_to_dict(event: EventRecord) -> dict[str, Any]:
    return {
        "timestamp": event.timestamp.isoformat(),
        "max_intensity": event.max_intensity,
        "max_gal": event.max_gal,
        "max_lpgm_class": event.max_lpgm_class,
        "max_sva": event.max_sva,
    }


def event_from_dict(data: Mapping[str, Any]) -> EventRecord:
    """Inverse of :func:`event_to_dict`; raises ``KeyError``/``ValueError``/``TypeError`` on bad input."""
    return EventRecord(
        timestamp=datetime.fromisoformat(str(data["timestamp"])),
        max_intensity=float(data["max_intensity"]),
        max_gal=float(data["max_gal"]),
        max_lpgm_class=int(data["max_lpgm_class"]),
        max_sva=float(data["max_sva"]),
    )


class HistoryStore:
    """
    Newest-first list of :class:`EventRecord` capped at ``capacity``.

    :meth:`record` inserts under a lock and hands a snapshot to a single
    background writer thread, which replaces the JSON file atomically.
    Background write failures are logged and counted, never raised.
    :meth:`export` runs on the same writer thread and returns a
    :class:`~concurrent.futures.Future`, so an interactive caller can
    observe export failures through ``future.result()``.

    A missing, empty or corrupt history file at startup means empty history.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        *,
        autoload: bool = True,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.path = Path(path).expanduser() if path is not None else default_history_path()
        self.capacity = int(capacity)
        self._lock = threading.Lock()
        self._events: List[EventRecord] = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="QuakeStreamHistory")
        self._closed = False
        self.write_failures = 0
        if autoload:
            loaded = self._load()
            with self._lock:
                self._events = loaded

    # ------------------------------------------------------------------ mutate
    def record(self, event: EventRecord) -> None:
        """Insert ``event`` at the front, trim the oldest beyond capacity, persist in the background."""
        with self._lock:
            self._events.insert(0, event)
            del self._events[self.capacity:]
            assert len(self._events) <= self.capacity, "history exceeded capacity after trim"
            snapshot = tuple(self._events)
        self._submit_save(snapshot)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
        self._submit_save(())

    # ------------------------------------------------------------------- query
    def snapshot(self) -> Tuple[EventRecord, ...]:
        """Return a point-in-time copy, newest first."""
        with self._lock:
            return tuple(self._events)

    def latest(self) -> Optional[EventRecord]:
        with self._lock:
            return self._events[0] if self._events else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    # ------------------------------------------------------------------ export
    def export(self, snapshot: Sequence[EventRecord], destination: str | Path) -> Future:
        """
        Write ``snapshot`` as CSV to ``destination`` off the calling thread.

        The returned future resolves to the destination path, or raises the
        I/O error that stopped the export.
        """
        rows = tuple(snapshot)
        target = Path(destination).expanduser()

        def _export() -> Path:
            with time_block(f"history export ({len(rows)} rows)"):
                csv_writer.write_events(target, rows)
            logger.info("Exported %d events to %s", len(rows), target)
            return target

        return self._executor.submit(_export)

    def export_current(self, destination: str | Path) -> Future:
        """Export the current snapshot; see :meth:`export`."""
        return self.export(self.snapshot(), destination)

    # --------------------------------------------------------------- lifecycle
    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every write queued so far has finished (or ``timeout`` elapses)."""
        if self._closed:
            return
        self._executor.submit(lambda: None).result(timeout)

    def close(self) -> None:
        """Finish pending writes and stop the writer thread."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "HistoryStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ----------------------------------------------------------------- helpers
    def _submit_save(self, snapshot: Tuple[EventRecord, ...]) -> None:
        if self._closed:
            logger.warning("History store closed; %d events kept in memory only", len(snapshot))
            return
        self._executor.submit(self._save, snapshot)

    def _save(self, snapshot: Tuple[EventRecord, ...]) -> None:
        try:
            with time_block(f"history save ({len(snapshot)} events)"):
                payload = json.dumps([event_to_dict(e) for e in snapshot], indent=2)
                csv_writer.atomic_write_text(self.path, payload)
        except Exception:
            self.write_failures += 1
            logger.exception("Failed to persist event history to %s", self.path)

    def _load(self) -> List[EventRecord]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning("Could not read history file %s (%s)", self.path, exc)
            return []

        if not text.strip():
            return []

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt history file %s (%s)", self.path, exc)
            return []

        if not isinstance(raw, list):
            logger.warning("Ignoring history file %s: expected a list, got %s", self.path, type(raw).__name__)
            return []

        events: List[EventRecord] = []
        for item in raw[: self.capacity]:
            if not isinstance(item, Mapping):
                logger.debug("Skipping non-object history entry: %r", item)
                continue
            try:
                events.append(event_from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping malformed history entry %r (%s)", item, exc)
        logger.info("Loaded %d events from %s", len(events), self.path)
        return events
