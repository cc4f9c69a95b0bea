"""In-memory stores that outlive a single sample.

:mod:`history` keeps the bounded list of closed seismic events and mirrors
it to disk; the pipeline only ever appends to it from its worker thread,
while consumers read snapshots.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_HISTORY_CAPACITY",
    "HistoryStore",
]

from .history import DEFAULT_HISTORY_CAPACITY, HistoryStore
