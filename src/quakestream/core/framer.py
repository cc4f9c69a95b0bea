"""Reassemble a raw byte stream into newline-delimited text records."""

from __future__ import annotations

import logging
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINE_BYTES = 4096


class LineFramer:
    """
    Incremental line splitter for serial-style byte streams.

    Bytes are buffered until a ``\\n`` arrives; each completed record is
    decoded as ASCII, trimmed of surrounding whitespace (which also removes a
    ``\\r`` before the terminator) and returned. Blank records are dropped.
    The trailing partial record is kept for the next :meth:`feed` call, so
    the output never depends on how the input was chunked.

    A record longer than ``max_line_bytes`` is discarded whole, whether it
    arrived in one chunk or many.
    """

    def __init__(self, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES) -> None:
        if max_line_bytes <= 0:
            raise ValueError("max_line_bytes must be positive")
        self._max_line_bytes = int(max_line_bytes)
        self._buffer = bytearray()
        self._discarding = False
        self.overflow_count = 0

    def feed(self, data: bytes) -> List[str]:
        """Append ``data`` and return every line it completed, in order."""
        lines: List[str] = []
        if not data:
            return lines

        self._buffer.extend(data)
        while True:
            idx = self._buffer.find(b"\n")
            if idx < 0:
                break
            record = bytes(self._buffer[:idx])
            del self._buffer[: idx + 1]

            if self._discarding:
                # Tail of an oversized record whose head was already dropped.
                self._discarding = False
                continue
            if len(record) > self._max_line_bytes:
                self._note_overflow(len(record))
                continue

            line = record.decode("ascii", errors="replace").strip()
            if line:
                lines.append(line)

        if len(self._buffer) > self._max_line_bytes:
            if not self._discarding:
                self._note_overflow(len(self._buffer))
            self._buffer.clear()
            self._discarding = True

        return lines

    @property
    def pending(self) -> int:
        """Number of buffered bytes belonging to an unfinished line."""
        return len(self._buffer)

    def reset(self) -> None:
        """Forget any partial line (used when a source is reopened)."""
        self._buffer.clear()
        self._discarding = False

    def _note_overflow(self, size: int) -> None:
        self.overflow_count += 1
        logger.warning(
            "Dropping %d-byte record without terminator (limit %d bytes)",
            size,
            self._max_line_bytes,
        )
