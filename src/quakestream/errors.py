"""Exception types raised across the QuakeStream package."""

from __future__ import annotations


class QuakeStreamError(Exception):
    """Base class for errors that cross a component boundary."""


class TransportError(QuakeStreamError):
    """The byte source failed (connection lost, device unplugged, I/O error)."""


class ConfigError(QuakeStreamError, ValueError):
    """A configuration value is out of range or has the wrong shape."""


__all__ = ["QuakeStreamError", "TransportError", "ConfigError"]
