"""
Inbound path: drains the transport and feeds decoded telemetry to the dispatcher.

The transport read is the only place this thread waits. A stop request is
honoured at the next read timeout; whatever partial record is buffered at that
point is thrown away. Both callbacks are handed the receiver that raised them,
so the owner can tell a stale session's thread from the current one.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from mission_control.config import READ_CHUNK_SIZE
from mission_control.errors import LinkLostError
from mission_control.navigation.dispatcher import Dispatcher
from mission_control.wireless.comm import MessageType, RecordBuffer
from mission_control.wireless.transport import Transport

logger = logging.getLogger(__name__)


class TelemetryReceiver(threading.Thread):
    def __init__(
        self,
        transport: Transport,
        dispatcher: Dispatcher,
        on_link_lost: Callable[["TelemetryReceiver", str], None],
        on_remote_disconnect: Callable[["TelemetryReceiver"], None],
        chunk_size: int = READ_CHUNK_SIZE,
        log_packets: bool = False,
    ) -> None:
        super().__init__(name="telemetry-receiver", daemon=True)
        self.transport = transport
        self.dispatcher = dispatcher
        self.buffer = RecordBuffer()
        self.chunk_size = chunk_size
        self.log_packets = log_packets
        self._on_link_lost = on_link_lost
        self._on_remote_disconnect = on_remote_disconnect
        self._stop_event = threading.Event()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        logger.debug("Receiver started")
        try:
            while not self._stop_event.is_set():
                try:
                    data = self.transport.read_bytes(self.chunk_size)
                except LinkLostError as exc:
                    if not self._stop_event.is_set():
                        self._on_link_lost(self, str(exc))
                    break

                if not data or self._stop_event.is_set():
                    continue
                self.buffer.feed(data)
                if self._drain():
                    self._on_remote_disconnect(self)
                    break
        finally:
            self.buffer.clear()
            logger.debug("Receiver stopped")

    def _drain(self) -> bool:
        """Dispatch every complete record. Returns True if the robot hung up."""
        for message in self.buffer.messages():
            if self.log_packets:
                logger.debug("<- %s %s", message.type.name, message.params)
            self.dispatcher.dispatch(message)
            if message.type == MessageType.DISCONNECT:
                return True
        return False
