"""Service adapter that serves snapshot requests from any Snapshotter."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable
from typing import TypeVar

from snapshotter.convert import (
    ConversionError,
    Status,
    StatusCode,
    info_from_message,
    info_to_message,
    status_from_error,
)
from snapshotter.messages import (
    CleanupRequest,
    CommitSnapshotRequest,
    ListSnapshotsRequest,
    ListSnapshotsResponse,
    MountsRequest,
    MountsResponse,
    PrepareSnapshotRequest,
    PrepareSnapshotResponse,
    RemoveSnapshotRequest,
    StatSnapshotRequest,
    StatSnapshotResponse,
    UpdateSnapshotRequest,
    UpdateSnapshotResponse,
    UsageRequest,
    UsageResponse,
    ViewSnapshotRequest,
    ViewSnapshotResponse,
)
from snapshotter.types import Info, Snapshotter

_T = TypeVar("_T")

LIST_BATCH_SIZE = 100


async def _as_status(awaitable: Awaitable[_T]) -> _T:
    """Await a snapshotter call, turning any failure into a Status."""
    try:
        return await awaitable
    except Status:
        raise
    except Exception as exc:
        raise status_from_error(exc) from exc


class SnapshotsService:
    """Handles snapshot service requests by delegating to a Snapshotter.

    Every handler raises Status on failure.
    """

    def __init__(self, snapshotter: Snapshotter) -> None:
        self.snapshotter = snapshotter

    async def prepare(self, request: PrepareSnapshotRequest) -> PrepareSnapshotResponse:
        mounts = await _as_status(
            self.snapshotter.prepare(request.key, request.parent, dict(request.labels))
        )
        return PrepareSnapshotResponse(mounts=list(mounts))

    async def view(self, request: ViewSnapshotRequest) -> ViewSnapshotResponse:
        mounts = await _as_status(
            self.snapshotter.view(request.key, request.parent, dict(request.labels))
        )
        return ViewSnapshotResponse(mounts=list(mounts))

    async def mounts(self, request: MountsRequest) -> MountsResponse:
        mounts = await _as_status(self.snapshotter.mounts(request.key))
        return MountsResponse(mounts=list(mounts))

    async def commit(self, request: CommitSnapshotRequest) -> None:
        await _as_status(
            self.snapshotter.commit(request.name, request.key, dict(request.labels))
        )

    async def remove(self, request: RemoveSnapshotRequest) -> None:
        await _as_status(self.snapshotter.remove(request.key))

    async def stat(self, request: StatSnapshotRequest) -> StatSnapshotResponse:
        info = await _as_status(self.snapshotter.stat(request.key))
        return StatSnapshotResponse(info=info_to_message(info))

    async def update(self, request: UpdateSnapshotRequest) -> UpdateSnapshotResponse:
        if request.info is None:
            raise Status(StatusCode.FAILED_PRECONDITION, "info is required")
        try:
            info = info_from_message(request.info)
        except ConversionError as exc:
            raise Status(
                StatusCode.INVALID_ARGUMENT, f"Failed to convert timestamp: {exc}"
            ) from exc

        fields = list(request.update_mask.paths) if request.update_mask is not None else None
        updated = await _as_status(self.snapshotter.update(info, fields))
        return UpdateSnapshotResponse(info=info_to_message(updated))

    async def _walk(self, request: ListSnapshotsRequest) -> AsyncIterator[Info]:
        infos = await self.snapshotter.list(request.snapshotter, list(request.filters))
        async for info in infos:
            yield info

    async def list(self, request: ListSnapshotsRequest) -> AsyncIterator[ListSnapshotsResponse]:
        """Yield all snapshots in batches of at most LIST_BATCH_SIZE."""
        walk = self._walk(request)
        batch = []
        try:
            while True:
                try:
                    info = await anext(walk)
                except StopAsyncIteration:
                    break
                except Status:
                    raise
                except Exception as exc:
                    raise status_from_error(exc) from exc
                batch.append(info_to_message(info))
                if len(batch) >= LIST_BATCH_SIZE:
                    yield ListSnapshotsResponse(info=batch)
                    batch = []
        finally:
            await walk.aclose()

        if batch:
            yield ListSnapshotsResponse(info=batch)

    async def usage(self, request: UsageRequest) -> UsageResponse:
        usage = await _as_status(self.snapshotter.usage(request.key))
        return UsageResponse(size=usage.size, inodes=usage.inodes)

    async def cleanup(self, request: CleanupRequest) -> None:
        await _as_status(self.snapshotter.clear())


def server(snapshotter: Snapshotter) -> SnapshotsService:
    """Create a snapshots service from any Snapshotter implementation."""
    return SnapshotsService(snapshotter)