"""Synthetic and file-backed byte sources for demos, tests and bench runs."""

from __future__ import annotations

import logging
import math
import random
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..errors import TransportError

logger = logging.getLogger(__name__)

Frame = Tuple[float, float, float, float]  # x, y, z (g), intensity

DEFAULT_FRAME_INTERVAL_S = 0.1
# Procedural scenario: quiet, light shaking, strong shaking, long-period sway.
SCENARIO_PERIOD_S = 60.0


def format_frame(x: float, y: float, z: float, intensity: float) -> bytes:
    """Encode one frame as an ``$XSACC`` and an ``$XSINT`` sentence."""
    return (
        f"$XSACC,{x:.3f},{y:.3f},{z:.3f}*00\r\n"
        f"$XSINT,{intensity:.2f}*00\r\n"
    ).encode("ascii")


def load_playback_frames(path: Path) -> List[Frame]:
    """
    Read ``x,y,z[,intensity]`` rows from a CSV file.

    Blank lines and ``#`` comments are skipped; unparsable fields read as 0.
    """
    frames: List[Frame] = []
    with Path(path).open("r", encoding="utf-8") as fh:
        for raw in fh:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split(",")
            if len(parts) < 3:
                continue
            values = []
            for part in parts[:4]:
                try:
                    values.append(float(part))
                except ValueError:
                    values.append(0.0)
            while len(values) < 4:
                values.append(0.0)
            frames.append((values[0], values[1], values[2], values[3]))
    return frames


def procedural_frame(elapsed: float, rng: random.Random) -> Frame:
    """Return the synthetic frame for ``elapsed`` seconds into the scenario cycle."""
    t = elapsed % SCENARIO_PERIOD_S
    if t < 10.0:
        x, y, z = ((rng.random() - 0.5) * 0.02 for _ in range(3))
        return x, y, 1.0 + z, 0.0
    if t < 15.0:
        return (
            math.sin(t * 50.0) * 0.1,
            math.cos(t * 45.0) * 0.1,
            1.0,
            0.5 + rng.random() * 0.5,
        )
    if t < 30.0:
        return (
            math.sin(t * 10.0) * 2.0,
            math.cos(t * 12.0) * 1.5,
            1.0 + math.sin(t * 8.0) * 1.0,
            3.5 + math.sin(t) * 1.5,
        )
    phase = 2.0 * math.pi * t / 3.33
    return math.sin(phase) * 0.5, math.cos(phase) * 0.4, 1.0, 1.0 + rng.random()


class MockByteSource:
    """
    Emits one acceleration and one intensity sentence every ``interval_s``.

    With ``playback`` the frames come from a CSV file (looped); otherwise
    a procedural quiet/shake/sway cycle is generated. Frames that fell due
    while nobody was reading are produced in one burst, so a slow reader
    sees the same sequence as a fast one.
    """

    def __init__(
        self,
        playback: Optional[Path] = None,
        *,
        interval_s: float = DEFAULT_FRAME_INTERVAL_S,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.interval_s = float(interval_s)
        self._playback = Path(playback) if playback is not None else None
        self._frames: List[Frame] = []
        self._rng = random.Random(seed)
        self._clock = clock
        self._sleep = sleep
        self._start: Optional[float] = None
        self._emitted = 0
        self._index = 0

    def open(self) -> None:
        if self._playback is not None:
            try:
                self._frames = load_playback_frames(self._playback)
            except OSError as exc:
                raise TransportError(f"Cannot read playback file {self._playback}: {exc}") from exc
            if not self._frames:
                logger.warning("Playback file %s has no frames; using procedural data", self._playback)
        self._start = self._clock()
        self._emitted = 0
        self._index = 0

    def close(self) -> None:
        self._start = None

    def read(self, timeout: float) -> bytes:
        if self._start is None:
            raise TransportError("Mock source is not open")
        now = self._clock()
        next_due = self._start + self._emitted * self.interval_s
        if now < next_due:
            wait = min(float(timeout), next_due - now)
            if wait > 0:
                self._sleep(wait)
            now = self._clock()

        due = int((now - self._start) / self.interval_s) + 1
        chunks = []
        while self._emitted < due:
            chunks.append(format_frame(*self._next_frame()))
            self._emitted += 1
        return b"".join(chunks)

    def _next_frame(self) -> Frame:
        if self._frames:
            frame = self._frames[self._index]
            self._index = (self._index + 1) % len(self._frames)
            return frame
        return procedural_frame(self._emitted * self.interval_s, self._rng)


class ReplayByteSource:
    """
    Replays a captured sentence log in fixed-size chunks.

    Once the file is exhausted ``read`` returns ``b""`` (or starts over when
    ``loop`` is set).
    """

    def __init__(self, path: Path, *, chunk_size: int = 256, loop: bool = False) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.path = Path(path)
        self.chunk_size = int(chunk_size)
        self.loop = loop
        self._data: Optional[bytes] = None
        self._offset = 0

    @property
    def exhausted(self) -> bool:
        return self._data is not None and not self.loop and self._offset >= len(self._data)

    def open(self) -> None:
        try:
            self._data = self.path.read_bytes()
        except OSError as exc:
            raise TransportError(f"Cannot read replay file {self.path}: {exc}") from exc
        self._offset = 0

    def close(self) -> None:
        self._data = None

    def read(self, timeout: float) -> bytes:
        if self._data is None:
            raise TransportError("Replay source is not open")
        if self._offset >= len(self._data):
            if not self.loop or not self._data:
                return b""
            self._offset = 0
        chunk = self._data[self._offset : self._offset + self.chunk_size]
        self._offset += len(chunk)
        return chunk
