"""Core snapshot data types and the abstract snapshotter interface."""

from __future__ import annotations

import abc
import enum
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Kind(enum.Enum):
    """Snapshot kinds."""

    UNKNOWN = "Unknown"
    VIEW = "View"
    ACTIVE = "Active"
    COMMITTED = "Committed"


@dataclass
class Info:
    """Information about a particular snapshot."""

    kind: Kind = Kind.UNKNOWN
    name: str = ""
    parent: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)


@dataclass
class Usage:
    """Disk resources consumed by a snapshot itself, excluding its parent."""

    inodes: int = 0
    size: int = 0

    def __iadd__(self, other: Usage) -> Usage:
        if not isinstance(other, Usage):
            return NotImplemented
        self.inodes += other.inodes
        self.size += other.size
        return self

    def __add__(self, other: Usage) -> Usage:
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(inodes=self.inodes + other.inodes, size=self.size + other.size)


@dataclass
class Mount:
    """A mount specification describing how to mount a snapshot."""

    type: str = ""
    source: str = ""
    target: str = ""
    options: list[str] = field(default_factory=list)


class Snapshotter(abc.ABC):
    """Allocates, snapshots and mounts filesystem changesets.

    Every snapshot has a parent; the empty parent is the empty string.
    Failures are reported by raising exceptions.
    """

    @abc.abstractmethod
    async def stat(self, key: str) -> Info:
        """Return the info for an active or committed snapshot."""

    @abc.abstractmethod
    async def update(self, info: Info, fieldpaths: list[str] | None) -> Info:
        """Update the mutable properties of a snapshot."""

    @abc.abstractmethod
    async def usage(self, key: str) -> Usage:
        """Return the resource usage of a snapshot, excluding its parents."""

    @abc.abstractmethod
    async def mounts(self, key: str) -> list[Mount]:
        """Return the mounts for the active snapshot identified by key."""

    @abc.abstractmethod
    async def prepare(self, key: str, parent: str, labels: dict[str, str]) -> list[Mount]:
        """Create an active snapshot descending from parent."""

    @abc.abstractmethod
    async def view(self, key: str, parent: str, labels: dict[str, str]) -> list[Mount]:
        """Create a read-only view on parent tracked by key."""

    @abc.abstractmethod
    async def commit(self, name: str, key: str, labels: dict[str, str]) -> None:
        """Capture the changes of key into a committed snapshot called name."""

    @abc.abstractmethod
    async def remove(self, key: str) -> None:
        """Remove the committed or active snapshot identified by key."""

    async def clear(self) -> None:
        """Perform deferred resource cleanup; does nothing by default."""
        return None

    @abc.abstractmethod
    async def list(self, snapshotter: str, filters: list[str]) -> AsyncIterator[Info]:
        """Return an async iterator over all snapshots."""