"""
Applies inbound telemetry to the navigation state and notifies listeners.

Messages are handled one at a time in the order they are given. Each one
produces at most one state change and at most one notification, both made
while the state lock is held, so a reader never sees a half-applied message.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from mission_control.navigation.listener import NavigationListener
from mission_control.navigation.state import (
    ConnectionState,
    NavigationSnapshot,
    NavigationState,
    Obstacle,
    Pose,
    UncertaintyEstimate,
    WallCategory,
    WallSegment,
)
from mission_control.wireless.comm import Message, MessageType

logger = logging.getLogger(__name__)

EXPLORE_COMPLETE = "explore complete"


class Dispatcher:
    """Single writer of NavigationState."""

    def __init__(self, listeners: Optional[Iterable[NavigationListener]] = None) -> None:
        self._state = NavigationState()
        self._lock = threading.RLock()
        self._listeners: List[NavigationListener] = list(listeners or [])
        self.dispatched = 0
        self.ignored = 0

        self._handlers: Dict[MessageType, Callable[[Message], bool]] = {
            MessageType.POS_UPDATE: self._handle_pos_update,
            MessageType.CRASH: self._handle_crash,
            MessageType.WALL: self._handle_wall,
            MessageType.STD_DEV: self._handle_std_dev,
            MessageType.EXPLORE_RECEIVED: self._handle_explore_received,
            MessageType.GRAB_BOMB: self._handle_grab_bomb,
            MessageType.DISCONNECT: self._handle_disconnect,
        }

    def add_listener(self, listener: NavigationListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: NavigationListener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def snapshot(self) -> NavigationSnapshot:
        with self._lock:
            return self._state.snapshot()

    @property
    def connection_state(self) -> ConnectionState:
        with self._lock:
            return self._state.connection

    def dispatch(self, message: Message) -> bool:
        """Apply one message. Returns False when it was dropped."""
        handler = self._handlers.get(message.type)
        with self._lock:
            if handler is None:
                logger.warning("Ignoring unexpected %s from robot", message.type.name)
                applied = False
            else:
                applied = handler(message)
            if applied:
                self.dispatched += 1
            else:
                self.ignored += 1
        return applied

    def dispatch_all(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.dispatch(message)

    def set_connection_state(self, state: ConnectionState) -> None:
        with self._lock:
            if self._state.connection == state:
                return
            self._state.connection = state
            self._notify("on_connection_state_changed", state)

    def reset_session(self) -> None:
        with self._lock:
            self._state.clear_history()
            self._notify("on_status_message", "session history cleared")

    def report_status(self, text: str) -> None:
        with self._lock:
            self._notify("on_status_message", text)

    def _notify(self, event: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception:
                logger.exception("Listener %r failed in %s", listener, event)

    def _handle_pos_update(self, message: Message) -> bool:
        update = message.payload()
        self._state.pose = Pose(update.x, update.y, update.heading)
        self._notify("on_pose_changed", update.x, update.y, update.heading)
        return True

    def _handle_crash(self, message: Message) -> bool:
        crash = message.payload()
        self._state.obstacles.append(Obstacle(crash.x, crash.y))
        self._notify("on_obstacle_detected", crash.x, crash.y)
        return True

    def _handle_wall(self, message: Message) -> bool:
        wall = message.payload()
        try:
            category = WallCategory(wall.category)
        except ValueError:
            logger.warning("Dropping wall at (%d, %d) with unknown category %d",
                           wall.x, wall.y, wall.category)
            return False
        self._state.walls.append(WallSegment(wall.x, wall.y, category))
        self._notify("on_wall_detected", wall.x, wall.y, category)
        return True

    def _handle_std_dev(self, message: Message) -> bool:
        report = message.payload()
        self._state.uncertainty = UncertaintyEstimate(
            report.x, report.y, report.sdev_x, report.sdev_y
        )
        self._notify("on_uncertainty_changed", report.x, report.y, report.sdev_x, report.sdev_y)
        return True

    def _handle_explore_received(self, message: Message) -> bool:
        self._notify("on_status_message", EXPLORE_COMPLETE)
        return True

    def _handle_grab_bomb(self, message: Message) -> bool:
        # The ack carries no coordinates; the bomb is where the robot last reported itself.
        x, y = int(round(self._state.pose.x)), int(round(self._state.pose.y))
        self._state.bomb_captured = True
        self._state.bomb_position = (x, y)
        self._notify("on_bomb_captured", x, y)
        return True

    def _handle_disconnect(self, message: Message) -> bool:
        if self._state.connection != ConnectionState.DISCONNECTED:
            self._state.connection = ConnectionState.DISCONNECTED
            self._notify("on_connection_state_changed", ConnectionState.DISCONNECTED)
        return True
