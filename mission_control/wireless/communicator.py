"""
Connection state machine and outbound send path.

    DISCONNECTED --connect()--> CONNECTING --transport ok--> CONNECTED
    CONNECTING --transport failure--> DISCONNECTED
    any --disconnect() / robot DISCONNECT / link loss--> DISCONNECTED

Commands are only written while CONNECTED. Nothing is queued: a command sent
at any other time raises NotConnectedError, and a failed write drops the link.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from mission_control.config import StationConfig
from mission_control.errors import AlreadyConnectedError, NotConnectedError
from mission_control.navigation.dispatcher import Dispatcher
from mission_control.navigation.state import ConnectionState
from mission_control.wireless.comm import Message, MessageType, Number, encode, encode_message
from mission_control.wireless.receiver import TelemetryReceiver
from mission_control.wireless.transport import Transport

logger = logging.getLogger(__name__)


class RobotCommunicator:
    """Owns the transport, the receiver thread and the connection state."""

    def __init__(
        self,
        transport: Transport,
        dispatcher: Dispatcher,
        config: Optional[StationConfig] = None,
    ) -> None:
        self.transport = transport
        self.dispatcher = dispatcher
        self.config = config or StationConfig()
        self.target: Optional[str] = None
        self._receiver: Optional[TelemetryReceiver] = None
        # Serialises connect/disconnect/link-loss handling against each other.
        self._state_lock = threading.RLock()
        self.transport.set_link_lost_callback(lambda: self._handle_link_lost("transport reported link loss"))

    @property
    def state(self) -> ConnectionState:
        return self.dispatcher.connection_state

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def connect(self, target: str) -> bool:
        with self._state_lock:
            if self.state != ConnectionState.DISCONNECTED:
                raise AlreadyConnectedError(f"link is {self.state.value}")

            # A robot-initiated disconnect leaves its receiver to close the link;
            # finish that here so the old session cannot touch the new one.
            stale, self._receiver = self._receiver, None
            if stale is not None:
                stale.stop(timeout=self.config.read_timeout * 5)
                self.transport.disconnect()

            self.dispatcher.set_connection_state(ConnectionState.CONNECTING)
            logger.info("Trying to connect to %s", target)
            if not self.transport.connect(target):
                self.dispatcher.set_connection_state(ConnectionState.DISCONNECTED)
                self.dispatcher.report_status(f"Failed to connect to {target}")
                return False

            self.target = target
            if self.config.clear_history_on_connect:
                self.dispatcher.reset_session()
            self.dispatcher.set_connection_state(ConnectionState.CONNECTED)

            self._receiver = TelemetryReceiver(
                self.transport,
                self.dispatcher,
                on_link_lost=self._handle_receiver_link_lost,
                on_remote_disconnect=self._handle_remote_disconnect,
                chunk_size=self.config.read_chunk_size,
                log_packets=self.config.log_packets,
            )
            self._receiver.start()
            logger.info("Connected to %s", target)
            return True

    def disconnect(self) -> None:
        """Tell the robot we are leaving, then tear the link down."""
        with self._state_lock:
            if self.state == ConnectionState.DISCONNECTED:
                return
            if self.state == ConnectionState.CONNECTED:
                # Best effort; a failed write tears the link down on its own.
                self.transport.write_bytes(encode(MessageType.DISCONNECT))
            if self.state != ConnectionState.DISCONNECTED:
                self._teardown()
            logger.info("Disconnected from %s", self.target)

    def send(self, msg_type: MessageType, params: Iterable[Number] = ()) -> bool:
        return self.send_message(Message(MessageType(msg_type), tuple(params)))

    def send_message(self, message: Message) -> bool:
        """
        Encode and write one command.

        Raises NotConnectedError unless CONNECTED. Returns False if the write
        failed, in which case the link has been dropped.
        """
        if not self.is_connected:
            raise NotConnectedError(f"cannot send {message.type.name}: link is {self.state.value}")

        record = encode_message(message)
        if self.config.log_packets:
            logger.debug("-> %s %s", message.type.name, message.params)
        if self.transport.write_bytes(record):
            return True

        logger.warning("Failed to send %s", message.type.name)
        self._handle_link_lost(f"write of {message.type.name} failed")
        return False

    def _teardown(self) -> None:
        receiver, self._receiver = self._receiver, None
        if receiver is not None:
            receiver.stop(timeout=self.config.read_timeout * 5)
        self.transport.disconnect()
        self.dispatcher.set_connection_state(ConnectionState.DISCONNECTED)

    def _handle_link_lost(self, reason: str) -> None:
        with self._state_lock:
            if self.state == ConnectionState.DISCONNECTED:
                return
            logger.error("Link to %s lost: %s", self.target, reason)
            self._teardown()
            self.dispatcher.report_status(f"Link lost: {reason}")

    def _handle_receiver_link_lost(self, receiver: TelemetryReceiver, reason: str) -> None:
        with self._state_lock:
            if receiver is not self._receiver:
                logger.debug("Ignoring link loss from a finished session: %s", reason)
                return
            self._handle_link_lost(reason)

    def _handle_remote_disconnect(self, receiver: TelemetryReceiver) -> None:
        # The dispatcher has already moved the state to DISCONNECTED.
        with self._state_lock:
            if receiver is not self._receiver:
                return
            self._receiver = None
            receiver.stop()
            self.transport.disconnect()
            logger.info("Robot closed the link")
