"""
Turns operator input into robot commands.

Each command takes its own parameter struct holding the raw text the operator
typed. Fields are parsed in order; the first one that is not a finite number
raises ValidationError and nothing is sent. A command whose write fails raises
LinkLostError; by then the communicator has already dropped the link.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from mission_control.errors import LinkLostError, ValidationError
from mission_control.wireless.comm import (
    Echo,
    Explore,
    FixPos,
    Goto,
    GrabBomb,
    Message,
    Payload,
    Rotate,
    RotateTo,
    ScannerRotate,
    SendMap,
    SetPose,
    Stop,
    Travel,
)
from mission_control.wireless.communicator import RobotCommunicator

logger = logging.getLogger(__name__)

MAP_LEFT_ANGLE = 90.0
MAP_RIGHT_ANGLE = -90.0


@dataclass(frozen=True)
class AmountEntry:
    value: str


@dataclass(frozen=True)
class PointEntry:
    x: str
    y: str


@dataclass(frozen=True)
class PoseEntry:
    x: str
    y: str
    heading: str


def parse_field(field: str, text: str) -> float:
    try:
        value = float(text.strip())
    except (AttributeError, ValueError):
        raise ValidationError(field, text) from None
    if not math.isfinite(value):
        raise ValidationError(field, text)
    return value


class CommandIssuer:
    def __init__(self, communicator: RobotCommunicator) -> None:
        self.communicator = communicator

    def _send(self, payload: Payload) -> Message:
        # NotConnectedError propagates to the caller untouched.
        message = payload.message()
        if not self.communicator.send_message(message):
            raise LinkLostError(f"{message.type.name} was not sent: write failed")
        logger.info("Sent %s %s", message.type.name, message.params)
        return message

    def _amount(self, entry: AmountEntry, field: str) -> float:
        return parse_field(field, entry.value)

    def travel(self, entry: AmountEntry) -> Message:
        return self._send(Travel(self._amount(entry, "distance")))

    def rotate(self, entry: AmountEntry) -> Message:
        return self._send(Rotate(self._amount(entry, "angle")))

    def rotate_to(self, entry: AmountEntry) -> Message:
        return self._send(RotateTo(self._amount(entry, "angle")))

    def echo(self, entry: AmountEntry) -> Message:
        return self._send(Echo(self._amount(entry, "angle")))

    def explore(self, entry: AmountEntry) -> Message:
        return self._send(Explore(self._amount(entry, "angle")))

    def scanner_rotate(self, entry: AmountEntry) -> Message:
        return self._send(ScannerRotate(self._amount(entry, "angle")))

    def goto(self, entry: PointEntry) -> Message:
        x = parse_field("x", entry.x)
        y = parse_field("y", entry.y)
        return self._send(Goto(x, y))

    def set_pose(self, entry: PoseEntry) -> Message:
        x = parse_field("x", entry.x)
        y = parse_field("y", entry.y)
        heading = parse_field("heading", entry.heading)
        return self._send(SetPose(x, y, heading))

    def map_left(self, entry: PointEntry) -> Message:
        x = parse_field("x", entry.x)
        y = parse_field("y", entry.y)
        return self._send(SendMap(x, y, MAP_LEFT_ANGLE))

    def map_right(self, entry: PointEntry) -> Message:
        x = parse_field("x", entry.x)
        y = parse_field("y", entry.y)
        return self._send(SendMap(x, y, MAP_RIGHT_ANGLE))

    def stop(self) -> Message:
        return self._send(Stop())

    def fix_position(self) -> Message:
        return self._send(FixPos())

    def grab_bomb(self) -> Message:
        return self._send(GrabBomb())
