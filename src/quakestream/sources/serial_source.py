"""Byte source backed by a serial port (pyserial)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import serial

from ..errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class SerialConfig:
    """Serial connection settings.

    Attributes:
        port: Port name (e.g. "COM3" on Windows or "/dev/ttyUSB0" on Linux).
        baudrate: Must match the sensor firmware (default 115200).
        read_timeout_s: Upper bound for a single blocking read.
    """

    port: str
    baudrate: int = 115200
    read_timeout_s: float = 0.5


class SerialByteSource:
    """Reads raw bytes from an 8N1 serial port; never blocks longer than the read timeout."""

    def __init__(self, config: SerialConfig) -> None:
        self.config = config
        self._serial: Optional[serial.Serial] = None

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        if self.is_open:
            return
        logger.info("Opening %s at %d baud", self.config.port, self.config.baudrate)
        try:
            self._serial = serial.Serial(
                self.config.port,
                self.config.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.config.read_timeout_s,
                write_timeout=self.config.read_timeout_s,
            )
        except (serial.SerialException, ValueError) as exc:
            raise TransportError(f"Could not open {self.config.port}: {exc}") from exc

    def read(self, timeout: float) -> bytes:
        ser = self._serial
        if ser is None or not ser.is_open:
            raise TransportError(f"Serial port {self.config.port} is not open")
        try:
            waiting = ser.in_waiting
            if waiting:
                return ser.read(waiting)
            bounded = min(float(timeout), self.config.read_timeout_s)
            if ser.timeout != bounded:
                ser.timeout = bounded
            return ser.read(1)
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"Serial connection lost: {exc}") from exc

    def close(self) -> None:
        ser, self._serial = self._serial, None
        if ser is None:
            return
        try:
            ser.close()
        except (serial.SerialException, OSError) as exc:
            logger.warning("Error closing %s: %s", self.config.port, exc)
