"""Threshold hysteresis detector that turns intensity readings into event records."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from .models import EventRecord

logger = logging.getLogger(__name__)

DEFAULT_EVENT_THRESHOLD = 0.5


class EventDetector:
    """
    Two-state (Idle / Recording) machine over the intensity signal.

    An event opens when intensity reaches ``threshold`` and closes on the
    first reading below the same value. While recording, every intensity
    and motion observation raises the running maxima; the closing reading
    stamps the emitted :class:`EventRecord`.

    Motion values (gal, LPGM class, SVA) arrive on a different sentence
    than intensity, so the detector remembers the latest ones and uses them
    to seed a new event.
    """

    def __init__(self, threshold: float = DEFAULT_EVENT_THRESHOLD) -> None:
        self.threshold = float(threshold)
        self._recording = False
        self._latest_gal = 0.0
        self._latest_class = 0
        self._latest_sva = 0.0
        self._clear_maxima()

    @property
    def is_recording(self) -> bool:
        return self._recording

    def observe_motion(self, gal: float, lpgm_class: int, sva: float) -> None:
        """Record the latest processed acceleration values."""
        self._latest_gal = gal
        self._latest_class = lpgm_class
        self._latest_sva = sva
        if self._recording:
            self._max_gal = max(self._max_gal, gal)
            self._max_class = max(self._max_class, lpgm_class)
            self._max_sva = max(self._max_sva, sva)

    def observe_intensity(self, value: float, timestamp: datetime) -> Optional[EventRecord]:
        """Advance the state machine; return the event this reading closed, if any."""
        if not self._recording:
            if value >= self.threshold:
                self._recording = True
                self._max_intensity = value
                self._max_gal = self._latest_gal
                self._max_class = self._latest_class
                self._max_sva = self._latest_sva
                logger.info("Event opened at intensity %.2f", value)
            return None

        self._max_intensity = max(self._max_intensity, value)
        self._max_gal = max(self._max_gal, self._latest_gal)
        self._max_class = max(self._max_class, self._latest_class)
        self._max_sva = max(self._max_sva, self._latest_sva)

        if value >= self.threshold:
            return None

        event = EventRecord(
            timestamp=timestamp,
            max_intensity=self._max_intensity,
            max_gal=self._max_gal,
            max_lpgm_class=self._max_class,
            max_sva=self._max_sva,
        )
        self._recording = False
        self._clear_maxima()
        logger.info(
            "Event closed: max intensity %.3f, max gal %.2f, LPGM class %d",
            event.max_intensity,
            event.max_gal,
            event.max_lpgm_class,
        )
        return event

    def reset(self) -> None:
        """Return to Idle, dropping any open event and the remembered motion values."""
        self._recording = False
        self._latest_gal = 0.0
        self._latest_class = 0
        self._latest_sva = 0.0
        self._clear_maxima()

    def _clear_maxima(self) -> None:
        self._max_intensity = 0.0
        self._max_gal = 0.0
        self._max_class = 0
        self._max_sva = 0.0
