"""Filtering helpers."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import signal


def design_highpass(
    cutoff_hz: float,
    sample_rate_hz: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Design a second-order Butterworth high-pass filter.

    Parameters
    ----------
    cutoff_hz:
        Cutoff frequency in Hz (0 < cutoff_hz < sample_rate_hz / 2).
    sample_rate_hz:
        Sampling rate in Hz. Must be > 0.

    Returns
    -------
    (b, a):
        Numerator and denominator coefficients, ``a[0] == 1``.
    """
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be > 0, got {sample_rate_hz}")
    if cutoff_hz <= 0:
        raise ValueError(f"cutoff_hz must be > 0, got {cutoff_hz}")

    nyquist = 0.5 * float(sample_rate_hz)
    if cutoff_hz >= nyquist:
        raise ValueError(
            f"cutoff_hz must be < Nyquist ({nyquist:.3f} Hz), got {cutoff_hz}"
        )

    b, a = signal.butter(2, cutoff_hz / nyquist, btype="high", analog=False)
    return b, a


@dataclass
class BiquadState:
    """Previous two inputs and outputs of a Direct Form I biquad."""

    x1: float = 0.0
    x2: float = 0.0
    y1: float = 0.0
    y2: float = 0.0

    def clear(self) -> None:
        self.x1 = self.x2 = self.y1 = self.y2 = 0.0


class BiquadHighPass:
    """
    Causal two-pole, two-zero high-pass filter applied one sample at a time.

    Coefficients come from :func:`design_highpass`; state carries over
    between calls and is only cleared by :meth:`reset`. For a batch of
    inputs from a cleared state the output equals
    ``scipy.signal.lfilter(b, a, batch)``.
    """

    def __init__(self, cutoff_hz: float, sample_rate_hz: float) -> None:
        b, a = design_highpass(cutoff_hz, sample_rate_hz)
        self.cutoff_hz = float(cutoff_hz)
        self.sample_rate_hz = float(sample_rate_hz)
        self.b = b
        self.a = a
        # Plain floats keep the per-sample path free of NumPy scalar overhead.
        self._b0, self._b1, self._b2 = (float(v) for v in b)
        self._a1, self._a2 = float(a[1]), float(a[2])
        self.state = BiquadState()

    def process(self, value: float) -> float:
        s = self.state
        y = (
            self._b0 * value
            + self._b1 * s.x1
            + self._b2 * s.x2
            - self._a1 * s.y1
            - self._a2 * s.y2
        )
        s.x2, s.x1 = s.x1, value
        s.y2, s.y1 = s.y1, y
        return y

    def reset(self) -> None:
        self.state.clear()
