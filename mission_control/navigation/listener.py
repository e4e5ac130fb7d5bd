"""
Callbacks the dispatcher invokes for every observable navigation event.

Implementations are called on the receiver thread while the navigation state
lock is held, so they must return quickly. Anything slow (drawing, disk I/O)
has to be handed off to another thread or event loop.
"""

from __future__ import annotations

import logging

from mission_control.navigation.state import ConnectionState, WallCategory

logger = logging.getLogger(__name__)


class NavigationListener:
    """No-op base; override the events you care about."""

    def on_status_message(self, text: str) -> None:
        pass

    def on_pose_changed(self, x: float, y: float, heading: float) -> None:
        pass

    def on_obstacle_detected(self, x: int, y: int) -> None:
        pass

    def on_wall_detected(self, x: int, y: int, category: WallCategory) -> None:
        pass

    def on_uncertainty_changed(self, x: int, y: int, sdev_x: int, sdev_y: int) -> None:
        pass

    def on_bomb_captured(self, x: int, y: int) -> None:
        pass

    def on_connection_state_changed(self, state: ConnectionState) -> None:
        pass


class LoggingListener(NavigationListener):
    """Writes every event to the log. Handy when running without the GUI."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def on_status_message(self, text):
        logger.log(self.level, "Status: %s", text)

    def on_pose_changed(self, x, y, heading):
        logger.log(self.level, "Pose: x=%.2f y=%.2f heading=%.1f", x, y, heading)

    def on_obstacle_detected(self, x, y):
        logger.log(self.level, "Crash at (%d, %d)", x, y)

    def on_wall_detected(self, x, y, category):
        logger.log(self.level, "Wall (%s) at (%d, %d)", category.name, x, y)

    def on_uncertainty_changed(self, x, y, sdev_x, sdev_y):
        logger.log(self.level, "Std dev at (%d, %d): %d x %d", x, y, sdev_x, sdev_y)

    def on_bomb_captured(self, x, y):
        logger.log(self.level, "Bomb captured at (%d, %d)", x, y)

    def on_connection_state_changed(self, state):
        logger.log(self.level, "Link: %s", state.value)
