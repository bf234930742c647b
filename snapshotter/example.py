"""A minimal snapshotter that logs every call and holds no snapshots."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from snapshotter.types import Info, Mount, Snapshotter, Usage

logger = logging.getLogger(__name__)


async def _no_snapshots() -> AsyncIterator[Info]:
    for info in ():
        yield info


class ExampleSnapshotter(Snapshotter):
    """Logs each request and answers with default values."""

    async def stat(self, key: str) -> Info:
        logger.info("Stat: %s", key)
        return Info()

    async def update(self, info: Info, fieldpaths: list[str] | None) -> Info:
        logger.info("Update: info=%r, fieldpaths=%r", info, fieldpaths)
        return Info()

    async def usage(self, key: str) -> Usage:
        logger.info("Usage: %s", key)
        return Usage()

    async def mounts(self, key: str) -> list[Mount]:
        logger.info("Mounts: %s", key)
        return []

    async def prepare(self, key: str, parent: str, labels: dict[str, str]) -> list[Mount]:
        logger.info("Prepare: key=%s, parent=%s, labels=%r", key, parent, labels)
        return []

    async def view(self, key: str, parent: str, labels: dict[str, str]) -> list[Mount]:
        logger.info("View: key=%s, parent=%s, labels=%r", key, parent, labels)
        return []

    async def commit(self, name: str, key: str, labels: dict[str, str]) -> None:
        logger.info("Commit: name=%s, key=%s, labels=%r", name, key, labels)

    async def remove(self, key: str) -> None:
        logger.info("Remove: %s", key)

    async def list(self, snapshotter: str, filters: list[str]) -> AsyncIterator[Info]:
        logger.info("List: snapshotter=%s, filters=%r", snapshotter, filters)
        return _no_snapshots()