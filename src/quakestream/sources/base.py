"""Minimal contract between the pipeline and whatever delivers sensor bytes."""

from __future__ import annotations

from typing import Protocol


class ByteSource(Protocol):
    """
    A transport the ingestion thread can poll.

    ``read`` returns whatever bytes are available, waiting at most
    ``timeout`` seconds, and returns ``b""`` when nothing arrived. It raises
    :class:`~quakestream.errors.TransportError` when the connection is gone.
    ``close`` must be safe to call more than once.
    """

    def open(self) -> None:  # pragma: no cover - protocol
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        ...

    def read(self, timeout: float) -> bytes:  # pragma: no cover - protocol
        ...
