from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable


@dataclass
class RateEstimate:
    """Windowed input rate compared with the rate the signal chain assumes."""

    hz: float
    expected_hz: float
    samples: int

    @property
    def deviation(self) -> float:
        """Relative error of ``hz`` against ``expected_hz`` (0.1 == 10 %)."""
        if self.expected_hz <= 0:
            return 0.0
        return abs(self.hz - self.expected_hz) / self.expected_hz


class RateMonitor:
    """
    Estimate the acceleration sample rate from arrival timestamps.

    Notes
    -----
    - Timestamps are in seconds and assumed non-decreasing.
    - The high-pass filter and the integrator use a fixed sample interval;
      :meth:`is_off_nominal` tells the pipeline when the real stream
      disagrees with it by more than ``tolerance``.
    """

    def __init__(
        self,
        expected_hz: float,
        window_size: int = 200,
        tolerance: float = 0.2,
    ) -> None:
        if window_size <= 1:
            raise ValueError("window_size must be > 1")
        self._times: Deque[float] = deque(maxlen=window_size)
        self.expected_hz = float(expected_hz)
        self.tolerance = float(tolerance)

    def add_sample_time(self, t: float) -> None:
        self._times.append(float(t))

    def feed_times(self, times: Iterable[float]) -> None:
        """Convenience method to bulk-add timestamps."""
        for t in times:
            self.add_sample_time(t)

    @property
    def estimated_hz(self) -> float:
        """Estimate Hz from the current timestamp window, 0.0 when undetermined."""
        if len(self._times) < 2:
            return 0.0
        span = self._times[-1] - self._times[0]
        if span <= 0:
            return 0.0
        return (len(self._times) - 1) / span

    @property
    def is_full(self) -> bool:
        return len(self._times) == self._times.maxlen

    def estimate(self) -> RateEstimate:
        return RateEstimate(
            hz=self.estimated_hz,
            expected_hz=self.expected_hz,
            samples=len(self._times),
        )

    def is_off_nominal(self) -> bool:
        """True once a full window shows a rate outside ``tolerance``."""
        if not self.is_full:
            return False
        return self.estimate().deviation > self.tolerance

    def reset(self) -> None:
        self._times.clear()
