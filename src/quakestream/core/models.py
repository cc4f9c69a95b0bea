"""Shared dataclasses for processed samples, events and published snapshots."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

import numpy as np

EXPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(ts: datetime) -> str:
    """Render ``ts`` as ``yyyy-MM-dd HH:mm:ss.fff`` (milliseconds, truncated)."""
    return f"{ts.strftime(EXPORT_TIMESTAMP_FORMAT)}.{ts.microsecond // 1000:03d}"


@dataclass(frozen=True, slots=True)
class ProcessedSample:
    timestamp: datetime
    x: float
    y: float
    z: float
    magnitude: float
    gal: float
    filtered_gal: float = 0.0
    sva: float = 0.0
    lpgm_class: int = 0


@dataclass(frozen=True, slots=True)
class EventRecord:
    """A closed seismic event: peak values seen while intensity stayed above threshold."""

    timestamp: datetime
    max_intensity: float
    max_gal: float
    max_lpgm_class: int
    max_sva: float

    @property
    def formatted_timestamp(self) -> str:
        return format_timestamp(self.timestamp)


@dataclass(frozen=True, slots=True)
class DisplaySnapshot:
    """Read-only view of the bounded display window at one publish tick."""

    samples: Tuple[ProcessedSample, ...] = ()
    latest: Optional[ProcessedSample] = None

    @property
    def latest_gal(self) -> float:
        return self.latest.gal if self.latest is not None else 0.0

    def __len__(self) -> int:
        return len(self.samples)

    def as_arrays(self) -> dict[str, np.ndarray]:
        """
        Return the window as NumPy columns for plotting consumers.

        Keys are ``t`` (POSIX seconds), ``x``, ``y``, ``z``, ``gal`` and
        ``sva``; every array has one entry per sample, oldest first.
        """
        count = len(self.samples)
        columns = {
            "t": np.fromiter((s.timestamp.timestamp() for s in self.samples), dtype=np.float64, count=count),
        }
        for name in ("x", "y", "z", "gal", "sva"):
            columns[name] = np.fromiter(
                (getattr(s, name) for s in self.samples), dtype=np.float64, count=count
            )
        return columns


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    """Scalars republished at the throttled status cadence."""

    intensity: float = 0.0
    is_recording: bool = False
    sva: float = 0.0
    lpgm_class: int = 0
    input_rate_hz: float = 0.0
    connected: bool = False
