"""Core streaming pipeline: framing, detection, buffers, and scheduling.

This package sits between the byte sources and any display layer. The leaf
modules (framer, detector, ringbuffer, models, diagnostics, alerts) are
single-threaded building blocks; :mod:`quakestream.core.pipeline` wires them
into the threaded scheduler and is imported explicitly.
"""

from .alerts import AlertGate
from .detector import EventDetector
from .diagnostics import Diagnostics, ErrorNotice
from .framer import LineFramer
from .models import DisplaySnapshot, EventRecord, ProcessedSample, StatusSnapshot
from .ringbuffer import RingBuffer

__all__ = [
    "AlertGate",
    "Diagnostics",
    "DisplaySnapshot",
    "ErrorNotice",
    "EventDetector",
    "EventRecord",
    "LineFramer",
    "ProcessedSample",
    "RingBuffer",
    "StatusSnapshot",
]
