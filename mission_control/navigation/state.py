"""Navigation state reported by the robot.

`NavigationState` is mutated only by the dispatcher; everything else reads
immutable `NavigationSnapshot` copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Tuple


class ConnectionState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


class WallCategory(IntEnum):
    """Which scan produced a wall point."""

    LEFT = 0
    RIGHT = 1
    EXPLORE = 2


@dataclass(frozen=True)
class Pose:
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0


@dataclass(frozen=True)
class Obstacle:
    x: int
    y: int


@dataclass(frozen=True)
class WallSegment:
    x: int
    y: int
    category: WallCategory


@dataclass(frozen=True)
class UncertaintyEstimate:
    x: int
    y: int
    sdev_x: int
    sdev_y: int


@dataclass(frozen=True)
class NavigationSnapshot:
    pose: Pose
    obstacles: Tuple[Obstacle, ...]
    walls: Tuple[WallSegment, ...]
    uncertainty: Optional[UncertaintyEstimate]
    bomb_captured: bool
    bomb_position: Optional[Tuple[int, int]]
    connection: ConnectionState


@dataclass
class NavigationState:
    pose: Pose = field(default_factory=Pose)
    obstacles: List[Obstacle] = field(default_factory=list)
    walls: List[WallSegment] = field(default_factory=list)
    uncertainty: Optional[UncertaintyEstimate] = None
    bomb_captured: bool = False
    bomb_position: Optional[Tuple[int, int]] = None
    connection: ConnectionState = ConnectionState.DISCONNECTED

    def clear_history(self) -> None:
        """Forget everything reported during the previous session."""
        self.pose = Pose()
        self.obstacles.clear()
        self.walls.clear()
        self.uncertainty = None
        self.bomb_captured = False
        self.bomb_position = None

    def snapshot(self) -> NavigationSnapshot:
        return NavigationSnapshot(
            pose=self.pose,
            obstacles=tuple(self.obstacles),
            walls=tuple(self.walls),
            uncertainty=self.uncertainty,
            bomb_captured=self.bomb_captured,
            bomb_position=self.bomb_position,
            connection=self.connection,
        )
