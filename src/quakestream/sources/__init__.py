"""Byte sources the ingestion thread can poll.

:class:`ByteSource` is the whole contract (``open``/``read``/``close``).
:class:`SerialByteSource` talks to a real sensor through pyserial;
:class:`MockByteSource` and :class:`ReplayByteSource` generate or replay
sentences without hardware.
"""

from .base import ByteSource
from .mock import MockByteSource, ReplayByteSource
from .serial_source import SerialByteSource, SerialConfig

__all__ = [
    "ByteSource",
    "MockByteSource",
    "ReplayByteSource",
    "SerialByteSource",
    "SerialConfig",
]
