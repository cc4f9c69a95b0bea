"""Per-sample acceleration processing for long-period ground motion (LPGM).

Each :class:`~quakestream.sensors.sentences.AccelerationSample` goes through

1. vector magnitude ``sqrt(x² + y² + z²)``,
2. calibration into Gal (cm/s²),
3. a high-pass biquad that strips gravity and slow drift,
4. rectangular integration into a pseudo-velocity (cm/s), whose absolute
   value is the SVA,
5. a step-function lookup that maps SVA onto an ordinal LPGM class.

The filter and the integrator are stateful and order dependent, so one
:class:`LpgmProcessor` must only ever be fed from a single thread in arrival
order.
"""

from __future__ import annotations

import bisect
import math
from typing import Iterable, Sequence, Tuple

from ..core.models import ProcessedSample
from ..sensors.sentences import AccelerationSample
from .filters import BiquadHighPass

# Sensor reports g; 1 g = 980.665 Gal.
DEFAULT_CALIBRATION_FACTOR = 980.665
DEFAULT_SAMPLE_RATE_HZ = 100.0
DEFAULT_HIGHPASS_CUTOFF_HZ = 0.1
# JMA long-period ground motion class boundaries on Sva in cm/s.
DEFAULT_LPGM_BREAKPOINTS: Tuple[float, ...] = (5.0, 15.0, 50.0, 100.0)


def vector_magnitude(x: float, y: float, z: float) -> float:
    return math.sqrt(x * x + y * y + z * z)


def validate_breakpoints(breakpoints: Iterable[float]) -> Tuple[float, ...]:
    """Return ``breakpoints`` as a tuple, rejecting unordered or negative tables."""
    table = tuple(float(b) for b in breakpoints)
    if not table:
        raise ValueError("LPGM breakpoint table must not be empty")
    if table[0] < 0 or any(math.isnan(b) for b in table):
        raise ValueError(f"LPGM breakpoints must be non-negative numbers, got {table}")
    if any(lo >= hi for lo, hi in zip(table, table[1:])):
        raise ValueError(f"LPGM breakpoints must be strictly increasing, got {table}")
    return table


def classify_lpgm(sva: float, breakpoints: Sequence[float] = DEFAULT_LPGM_BREAKPOINTS) -> int:
    """
    Map ``sva`` onto a class in ``0..len(breakpoints)``.

    The class is the number of breakpoints that ``sva`` reaches, so a value
    equal to a breakpoint already belongs to the higher class.
    """
    return bisect.bisect_right(breakpoints, sva)


class Integrator:
    """Running rectangular integral with a fixed time step; never leaks or resets itself."""

    def __init__(self, dt: float) -> None:
        if dt <= 0:
            raise ValueError(f"dt must be > 0, got {dt}")
        self.dt = float(dt)
        self.value = 0.0

    def process(self, sample: float) -> float:
        self.value += sample * self.dt
        return self.value

    def reset(self) -> None:
        self.value = 0.0


class LpgmProcessor:
    """Stateful magnitude, calibration, filter, integration and classification chain."""

    def __init__(
        self,
        *,
        calibration_factor: float = DEFAULT_CALIBRATION_FACTOR,
        sample_rate_hz: float = DEFAULT_SAMPLE_RATE_HZ,
        cutoff_hz: float = DEFAULT_HIGHPASS_CUTOFF_HZ,
        breakpoints: Sequence[float] = DEFAULT_LPGM_BREAKPOINTS,
    ) -> None:
        self.calibration_factor = float(calibration_factor)
        self.breakpoints = validate_breakpoints(breakpoints)
        self.highpass = BiquadHighPass(cutoff_hz, sample_rate_hz)
        self.integrator = Integrator(1.0 / float(sample_rate_hz))

    @classmethod
    def from_config(cls, cfg) -> "LpgmProcessor":
        """Build a processor from a :class:`~quakestream.config.QuakeStreamConfig`."""
        return cls(
            calibration_factor=cfg.calibration_factor,
            sample_rate_hz=cfg.sample_rate_hz,
            cutoff_hz=cfg.highpass_cutoff_hz,
            breakpoints=cfg.lpgm_breakpoints,
        )

    def to_gal(self, magnitude: float) -> float:
        return magnitude * self.calibration_factor

    def process(self, sample: AccelerationSample) -> ProcessedSample:
        magnitude = vector_magnitude(sample.x, sample.y, sample.z)
        gal = self.to_gal(magnitude)
        filtered = self.highpass.process(gal)
        sva = abs(self.integrator.process(filtered))
        return ProcessedSample(
            timestamp=sample.timestamp,
            x=sample.x,
            y=sample.y,
            z=sample.z,
            magnitude=magnitude,
            gal=gal,
            filtered_gal=filtered,
            sva=sva,
            lpgm_class=classify_lpgm(sva, self.breakpoints),
        )

    def reset(self) -> None:
        """Clear filter and integrator state; only called at pipeline (re)start."""
        self.highpass.reset()
        self.integrator.reset()
