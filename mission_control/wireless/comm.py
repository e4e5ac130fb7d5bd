"""
Defines protocol for transmitting rover telemetry and receiving commands.

Both directions of the link share one closed vocabulary of message types.
Every record on the wire is big-endian and laid out as

    0xAA 0x55 | int32 tag | uint8 param_count | param_count x 4-byte field | uint8 checksum

The tag is the MessageType value. Fields follow the layout declared for the
tag: 'f' is a 32-bit float, 'i' a 32-bit signed integer. The checksum is the
sum of every byte between the marker and the checksum, modulo 256. No metadata
is exchanged up front; both ends know the layouts.

A decoder that hits a bad record, or starts mid-record after a dropped or
stray byte, scans forward to the next marker and picks the stream up there.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Dict, Iterable, Iterator, Tuple, Type, Union

from mission_control.errors import (
    ArityError,
    ArityMismatch,
    BadFrame,
    DecodeError,
    StreamEnded,
    UnknownType,
)

logger = logging.getLogger(__name__)

SYNC = b"\xaa\x55"
HEADER = struct.Struct(">2siB")
CHECKSUM_SIZE = 1
FIELD_SIZE = 4

Number = Union[int, float]


class MessageType(IntEnum):
    """Message vocabulary; the value is the wire tag."""

    GOTO = 0
    STOP = 1
    SET_POSE = 2
    FIX_POS = 3
    POS_UPDATE = 4
    CRASH = 5
    ECHO = 6
    ROTATE = 7
    TRAVEL = 8
    ROTATE_TO = 9
    SCANNER_ROTATE = 10
    SEND_MAP = 11
    WALL = 12
    EXPLORE = 13
    STD_DEV = 14
    DISCONNECT = 15
    EXPLORE_RECEIVED = 16
    GRAB_BOMB = 17

    @property
    def layout(self) -> str:
        return _LAYOUTS[self]

    @property
    def arity(self) -> int:
        return len(_LAYOUTS[self])

    @property
    def is_telemetry(self) -> bool:
        """True for types the robot is expected to send to the station."""
        return self in TELEMETRY_TYPES


_LAYOUTS: Dict[MessageType, str] = {
    MessageType.GOTO: "ff",
    MessageType.STOP: "",
    MessageType.SET_POSE: "fff",
    MessageType.FIX_POS: "",
    MessageType.POS_UPDATE: "fff",
    MessageType.CRASH: "ii",
    MessageType.ECHO: "f",
    MessageType.ROTATE: "f",
    MessageType.TRAVEL: "f",
    MessageType.ROTATE_TO: "f",
    MessageType.SCANNER_ROTATE: "f",
    MessageType.SEND_MAP: "fff",
    MessageType.WALL: "iii",
    MessageType.EXPLORE: "f",
    MessageType.STD_DEV: "iiii",
    MessageType.DISCONNECT: "",
    MessageType.EXPLORE_RECEIVED: "",
    MessageType.GRAB_BOMB: "",
}

_BODIES: Dict[MessageType, struct.Struct] = {
    msg_type: struct.Struct(">" + layout) for msg_type, layout in _LAYOUTS.items()
}

TELEMETRY_TYPES = frozenset({
    MessageType.POS_UPDATE,
    MessageType.CRASH,
    MessageType.WALL,
    MessageType.STD_DEV,
    MessageType.DISCONNECT,
    MessageType.EXPLORE_RECEIVED,
    MessageType.GRAB_BOMB,
})


def _coerce_params(msg_type: MessageType, params: Iterable[Number]) -> Tuple[Number, ...]:
    params = tuple(params)
    layout = msg_type.layout
    if len(params) != len(layout):
        raise ArityError(
            f"{msg_type.name} takes {len(layout)} params, got {len(params)}"
        )

    coerced = []
    for kind, value in zip(layout, params):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ArityError(f"{msg_type.name} param {value!r} is not a number")
        if kind == "i":
            if isinstance(value, float) and not value.is_integer():
                raise ArityError(f"{msg_type.name} param {value!r} must be integral")
            coerced.append(int(value))
        else:
            coerced.append(float(value))
    return tuple(coerced)


@dataclass(frozen=True)
class Message:
    """One decoded or to-be-encoded record. Params always match the layout."""

    type: MessageType
    params: Tuple[Number, ...] = ()

    def __post_init__(self) -> None:
        msg_type = MessageType(self.type)
        object.__setattr__(self, "type", msg_type)
        object.__setattr__(self, "params", _coerce_params(msg_type, self.params))

    def payload(self) -> "Payload":
        return _PAYLOADS[self.type](*self.params)


@dataclass(frozen=True)
class Payload:
    """Typed view of a message; each subclass pins its type and fields."""

    TYPE = None  # type: MessageType

    def message(self) -> Message:
        return Message(self.TYPE, tuple(getattr(self, f.name) for f in fields(self)))


@dataclass(frozen=True)
class Goto(Payload):
    TYPE = MessageType.GOTO
    x: float
    y: float


@dataclass(frozen=True)
class Stop(Payload):
    TYPE = MessageType.STOP


@dataclass(frozen=True)
class SetPose(Payload):
    TYPE = MessageType.SET_POSE
    x: float
    y: float
    heading: float


@dataclass(frozen=True)
class FixPos(Payload):
    TYPE = MessageType.FIX_POS


@dataclass(frozen=True)
class PosUpdate(Payload):
    TYPE = MessageType.POS_UPDATE
    x: float
    y: float
    heading: float


@dataclass(frozen=True)
class Crash(Payload):
    TYPE = MessageType.CRASH
    x: int
    y: int


@dataclass(frozen=True)
class Echo(Payload):
    TYPE = MessageType.ECHO
    angle: float


@dataclass(frozen=True)
class Rotate(Payload):
    TYPE = MessageType.ROTATE
    angle: float


@dataclass(frozen=True)
class Travel(Payload):
    TYPE = MessageType.TRAVEL
    distance: float


@dataclass(frozen=True)
class RotateTo(Payload):
    TYPE = MessageType.ROTATE_TO
    angle: float


@dataclass(frozen=True)
class ScannerRotate(Payload):
    TYPE = MessageType.SCANNER_ROTATE
    angle: float


@dataclass(frozen=True)
class SendMap(Payload):
    TYPE = MessageType.SEND_MAP
    x: float
    y: float
    angle: float


@dataclass(frozen=True)
class Wall(Payload):
    TYPE = MessageType.WALL
    x: int
    y: int
    category: int


@dataclass(frozen=True)
class Explore(Payload):
    TYPE = MessageType.EXPLORE
    angle: float


@dataclass(frozen=True)
class StdDev(Payload):
    TYPE = MessageType.STD_DEV
    x: int
    y: int
    sdev_x: int
    sdev_y: int


@dataclass(frozen=True)
class Disconnect(Payload):
    TYPE = MessageType.DISCONNECT


@dataclass(frozen=True)
class ExploreReceived(Payload):
    TYPE = MessageType.EXPLORE_RECEIVED


@dataclass(frozen=True)
class GrabBomb(Payload):
    TYPE = MessageType.GRAB_BOMB


_PAYLOADS: Dict[MessageType, Type[Payload]] = {
    cls.TYPE: cls
    for cls in (
        Goto, Stop, SetPose, FixPos, PosUpdate, Crash, Echo, Rotate, Travel,
        RotateTo, ScannerRotate, SendMap, Wall, Explore, StdDev, Disconnect,
        ExploreReceived, GrabBomb,
    )
}


def encode(msg_type: MessageType, params: Iterable[Number] = ()) -> bytes:
    """Build the wire record for a command. Raises ArityError on bad params."""
    return encode_message(Message(MessageType(msg_type), tuple(params)))


def encode_payload(payload: Payload) -> bytes:
    return encode_message(payload.message())


def encode_message(message: Message) -> bytes:
    body = _BODIES[message.type]
    try:
        packed = body.pack(*message.params)
    except (struct.error, OverflowError) as exc:
        raise ArityError(f"{message.type.name} params out of range: {exc}") from exc
    return frame(int(message.type), len(message.params), packed)


def frame(tag: int, count: int, body: bytes) -> bytes:
    """Wrap an already packed body in marker, header and checksum."""
    record = HEADER.pack(SYNC, tag, count) + body
    return record + bytes([checksum(record[len(SYNC):])])


def checksum(data: Union[bytes, bytearray, memoryview]) -> int:
    return sum(data) & 0xFF


def _next_marker(data: Union[bytes, bytearray], offset: int) -> int:
    """Offset of the first marker after `offset`, or where the scan should resume."""
    found = data.find(SYNC, offset + 1)
    if found >= 0:
        return found
    # A trailing first marker byte may be completed by the next read.
    if len(data) - 1 > offset and data[-1:] == SYNC[:1]:
        return len(data) - 1
    return len(data)


def decode(data: Union[bytes, bytearray], offset: int = 0) -> Tuple[Message, int]:
    """
    Decode the record starting at `offset`.

    Returns the message and the offset just past it. UnknownType,
    ArityMismatch and BadFrame carry `next_offset` at the next marker, so a
    damaged record never takes a good one down with it. StreamEnded means
    the record is incomplete and nothing was consumed.
    """
    head = bytes(data[offset:offset + len(SYNC)])
    if head != SYNC[:len(head)]:
        raise BadFrame("no record marker", _next_marker(data, offset))

    available = len(data) - offset
    if available < HEADER.size:
        raise StreamEnded(offset, HEADER.size - available)

    _, tag, count = HEADER.unpack_from(data, offset)
    try:
        msg_type = MessageType(tag)
    except ValueError:
        raise UnknownType(tag, _next_marker(data, offset)) from None
    if count != msg_type.arity:
        raise ArityMismatch(msg_type.name, msg_type.arity, count, _next_marker(data, offset))

    end = offset + HEADER.size + count * FIELD_SIZE + CHECKSUM_SIZE
    if len(data) < end:
        raise StreamEnded(offset, end - len(data))
    if data[end - 1] != checksum(data[offset + len(SYNC):end - 1]):
        raise BadFrame(f"{msg_type.name} record fails its checksum", _next_marker(data, offset))

    params = _BODIES[msg_type].unpack_from(data, offset + HEADER.size)
    return Message(msg_type, params), end


class RecordBuffer:
    """
    Accumulates inbound bytes and yields complete messages in arrival order.

    Malformed records are dropped and counted; an incomplete trailing record
    stays buffered until more bytes arrive or clear() is called.
    """

    def __init__(self) -> None:
        self._data = bytearray()
        self.discarded = 0

    def __len__(self) -> int:
        return len(self._data)

    def feed(self, data: bytes) -> None:
        self._data.extend(data)

    def clear(self) -> None:
        self._data.clear()

    def messages(self) -> Iterator[Message]:
        offset = 0
        try:
            while True:
                try:
                    message, offset = decode(self._data, offset)
                except StreamEnded:
                    return
                except DecodeError as exc:
                    self.discarded += 1
                    logger.warning("Discarding record: %s", exc)
                    offset = exc.next_offset
                    continue
                yield message
        finally:
            del self._data[:offset]
