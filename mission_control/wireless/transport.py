"""
Byte-level link to the robot.

The protocol layer only needs an ordered byte stream that reports when it
drops. `Transport` is that interface; `SerialTransport` implements it on top of
pyserial, so any pyserial URL works as a target (a device path for the radio
modem, `socket://host:port` for a bridge, `loop://` for loopback tests).
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

import serial
import serial.tools.list_ports

from mission_control.config import DEFAULT_BAUD_RATE, READ_TIMEOUT_SEC
from mission_control.errors import LinkLostError

logger = logging.getLogger(__name__)


class Transport:
    """Interface the communicator drives. Subclasses fill in the I/O."""

    def __init__(self) -> None:
        self._link_lost_callback: Optional[Callable[[], None]] = None

    def set_link_lost_callback(self, callback: Optional[Callable[[], None]]) -> None:
        self._link_lost_callback = callback

    def connect(self, identifier: str) -> bool:
        raise NotImplementedError

    def disconnect(self) -> None:
        raise NotImplementedError

    def read_bytes(self, size: int) -> bytes:
        """Block until data arrives or the read timeout passes (returns b"").

        Raises LinkLostError when the link is gone. Only write failures go
        through the link-lost callback.
        """
        raise NotImplementedError

    def write_bytes(self, record: bytes) -> bool:
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        raise NotImplementedError

    def _report_link_lost(self) -> None:
        callback = self._link_lost_callback
        if callback is not None:
            callback()


class SerialTransport(Transport):
    """Radio modem attached as a serial port."""

    def __init__(self, baud_rate: int = DEFAULT_BAUD_RATE, timeout: float = READ_TIMEOUT_SEC) -> None:
        super().__init__()
        self.baud_rate = baud_rate
        self.timeout = timeout
        self.port_name: Optional[str] = None
        self._serial: Optional[serial.SerialBase] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        port = self._serial
        return port is not None and port.is_open

    def connect(self, identifier: str) -> bool:
        """Open the serial port. Returns False if it cannot be opened."""
        try:
            port = serial.serial_for_url(
                identifier,
                baudrate=self.baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout,
                write_timeout=self.timeout * 10,
            )
        except (serial.SerialException, ValueError) as exc:
            logger.error("Could not open %s: %s", identifier, exc)
            return False

        with self._lock:
            previous, self._serial = self._serial, port
            self.port_name = identifier
        if previous is not None and previous.is_open:
            previous.close()
            logger.info("Closed previous port before switching to %s", identifier)
        logger.info("Opened %s at %d baud", identifier, self.baud_rate)
        return True

    def disconnect(self) -> None:
        with self._lock:
            port, self._serial = self._serial, None
        if port is not None and port.is_open:
            port.close()
            logger.info("Closed %s", self.port_name)

    def read_bytes(self, size: int) -> bytes:
        port = self._serial
        if port is None or not port.is_open:
            raise LinkLostError("serial port is closed")
        try:
            # Ask for whatever is already waiting so one read drains a burst.
            return port.read(max(size, port.in_waiting))
        except (serial.SerialException, OSError, TypeError, AttributeError) as exc:
            # pyserial raises TypeError/AttributeError when the port is closed mid-read.
            # Read failures reach the owner as LinkLostError, not through the callback.
            raise LinkLostError(str(exc)) from exc

    def write_bytes(self, record: bytes) -> bool:
        port = self._serial
        if port is None or not port.is_open:
            return False
        try:
            with self._lock:
                port.write(record)
                port.flush()
            return True
        except (serial.SerialException, OSError) as exc:
            logger.error("Write to %s failed: %s", self.port_name, exc)
            self._report_link_lost()
            return False


def available_ports() -> List[str]:
    """Return "device - description" entries for every serial port found."""
    return [f"{port.device} - {port.description}" for port in serial.tools.list_ports.comports()]
