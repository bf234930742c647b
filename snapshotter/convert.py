"""Conversions between wire messages and native types, and status errors."""

from __future__ import annotations

import enum

from snapshotter.messages import InfoMessage, Timestamp
from snapshotter.types import Info, Kind


class StatusCode(enum.IntEnum):
    """Canonical RPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class Status(Exception):
    """An RPC error carrying a status code and a message."""

    def __init__(self, code: StatusCode, message: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"Status(code={self.code.name}, message={self.message!r})"


class ConversionError(Exception):
    """Raised when a wire message cannot be converted to a native value."""


class TimestampConversionError(ConversionError):
    """Raised when a timestamp cannot be converted."""

    def __init__(self, reason: object) -> None:
        super().__init__(f"Failed to convert GRPC timestamp: {reason}")
        self.reason = reason


class InvalidEnumValueError(ConversionError):
    """Raised when an integer does not name a known enum member."""

    def __init__(self, value: int) -> None:
        super().__init__(f"Invalid enum value: {value}")
        self.value = value


_KIND_TO_INT = {
    Kind.UNKNOWN: 0,
    Kind.VIEW: 1,
    Kind.ACTIVE: 2,
    Kind.COMMITTED: 3,
}
_INT_TO_KIND = {number: kind for kind, number in _KIND_TO_INT.items()}


def kind_to_int(kind: Kind) -> int:
    """Return the wire value of a snapshot kind."""
    return _KIND_TO_INT[kind]


def kind_from_int(value: int) -> Kind:
    """Return the snapshot kind for a wire value."""
    try:
        return _INT_TO_KIND[value]
    except KeyError:
        raise InvalidEnumValueError(value) from None


def _timestamp_to_datetime(timestamp: Timestamp | None):
    try:
        return (timestamp or Timestamp()).to_datetime()
    except ValueError as exc:
        raise TimestampConversionError(exc) from exc


def info_from_message(message: InfoMessage) -> Info:
    """Convert a wire info message to native snapshot info."""
    return Info(
        kind=kind_from_int(message.kind),
        name=message.name,
        parent=message.parent,
        labels=dict(message.labels),
        created_at=_timestamp_to_datetime(message.created_at),
        updated_at=_timestamp_to_datetime(message.updated_at),
    )


def info_to_message(info: Info) -> InfoMessage:
    """Convert native snapshot info to a wire info message."""
    return InfoMessage(
        name=info.name,
        parent=info.parent,
        kind=kind_to_int(info.kind),
        created_at=Timestamp.from_datetime(info.created_at),
        updated_at=Timestamp.from_datetime(info.updated_at),
        labels=dict(info.labels),
    )


def status_from_error(error: BaseException) -> Status:
    """Turn any error into a status; statuses pass through unchanged."""
    if isinstance(error, Status):
        return error
    return Status(StatusCode.INTERNAL, str(error))