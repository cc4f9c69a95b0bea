"""Diagnostics sink: parse-failure counters and the error notification channel."""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_ERROR_BACKLOG = 100


@dataclass(frozen=True, slots=True)
class ErrorNotice:
    """One message for the downstream error channel."""

    timestamp: datetime
    source: str
    message: str


class Diagnostics:
    """
    Collects non-fatal problems from every stage of the pipeline.

    Parse failures are only counted (by reason); transport and persistence
    problems are also queued as :class:`ErrorNotice` objects so a consumer
    can show them. The notice backlog is bounded; the oldest notices are
    dropped first.
    """

    def __init__(
        self,
        *,
        backlog: int = DEFAULT_ERROR_BACKLOG,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._lock = threading.Lock()
        self._parse_failures: Counter[str] = Counter()
        self._errors: Deque[ErrorNotice] = deque(maxlen=max(1, int(backlog)))
        self._error_count = 0
        self._clock = clock

    # ------------------------------------------------------------------ parse
    def count_parse_failure(self, reason: str) -> None:
        with self._lock:
            self._parse_failures[reason] += 1

    def parse_failures(self) -> Dict[str, int]:
        """Return a copy of the per-reason parse failure counters."""
        with self._lock:
            return dict(self._parse_failures)

    @property
    def parse_failure_total(self) -> int:
        with self._lock:
            return sum(self._parse_failures.values())

    # ----------------------------------------------------------------- errors
    def report_error(self, source: str, message: str) -> ErrorNotice:
        """Queue an error for the downstream notification channel."""
        notice = ErrorNotice(timestamp=self._clock(), source=source, message=message)
        with self._lock:
            self._errors.append(notice)
            self._error_count += 1
        logger.warning("[%s] %s", source, message)
        return notice

    def drain_errors(self) -> List[ErrorNotice]:
        """Return and clear every queued error notice, oldest first."""
        with self._lock:
            items = list(self._errors)
            self._errors.clear()
        return items

    def latest_error(self) -> Optional[ErrorNotice]:
        with self._lock:
            return self._errors[-1] if self._errors else None

    @property
    def error_count(self) -> int:
        """Total errors reported, including ones already drained or dropped."""
        with self._lock:
            return self._error_count

    def reset(self) -> None:
        with self._lock:
            self._parse_failures.clear()
            self._errors.clear()
            self._error_count = 0
