"""
Exception hierarchy shared by the wireless and navigation packages.
"""

from __future__ import annotations


class MissionControlError(Exception):
    """Base class for every error raised by the station."""


class ArityError(MissionControlError):
    """Parameters do not match the layout declared for a message type."""


class DecodeError(MissionControlError):
    """An inbound record could not be turned into a message."""

    def __init__(self, message: str, next_offset: int) -> None:
        super().__init__(message)
        self.next_offset = next_offset


class UnknownType(DecodeError):
    """The record tag is outside the message vocabulary."""

    def __init__(self, tag: int, next_offset: int) -> None:
        super().__init__(f"unknown message tag {tag}", next_offset)
        self.tag = tag


class ArityMismatch(DecodeError):
    """The record carries a different number of fields than its tag declares."""

    def __init__(self, type_name: str, expected: int, received: int, next_offset: int) -> None:
        super().__init__(
            f"{type_name} expects {expected} params, record carries {received}",
            next_offset,
        )
        self.expected = expected
        self.received = received


class BadFrame(DecodeError):
    """The bytes at the cursor are not a valid record (no marker, bad checksum)."""

    def __init__(self, reason: str, next_offset: int) -> None:
        super().__init__(reason, next_offset)
        self.reason = reason


class StreamEnded(DecodeError):
    """Not enough bytes buffered for a complete record. Nothing was consumed."""

    def __init__(self, offset: int, needed: int) -> None:
        super().__init__(f"need {needed} more bytes", offset)
        self.needed = needed


class ValidationError(MissionControlError):
    """Operator input for a command field is not a usable number."""

    def __init__(self, field: str, text: str) -> None:
        super().__init__(f"Problem with {field} field: {text!r}")
        self.field = field
        self.text = text


class LinkError(MissionControlError):
    """Base class for connection state errors."""


class NotConnectedError(LinkError):
    """A command was sent while the link is not connected."""


class AlreadyConnectedError(LinkError):
    """connect() was called while a session is active or being set up."""


class LinkLostError(LinkError):
    """The transport reported that the link dropped."""
