from datetime import datetime, timezone

import pytest

from snapshotter.convert import Status, StatusCode, info_to_message
from snapshotter.messages import (
    CleanupRequest,
    CommitSnapshotRequest,
    FieldMask,
    InfoMessage,
    ListSnapshotsRequest,
    MountsRequest,
    PrepareSnapshotRequest,
    RemoveSnapshotRequest,
    StatSnapshotRequest,
    Timestamp,
    UpdateSnapshotRequest,
    UsageRequest,
    ViewSnapshotRequest,
)
from snapshotter.server import LIST_BATCH_SIZE, SnapshotsService, server
from snapshotter.types import Info, Kind, Mount, Snapshotter, Usage

FIXED_TIME = datetime(2021, 5, 4, 12, 0, tzinfo=timezone.utc)


class _Recorder(Snapshotter):
    def __init__(self, infos=(), fail_with=None, fail_list_after=None):
        self.calls = []
        self.infos = list(infos)
        self.fail_with = fail_with
        self.fail_list_after = fail_list_after

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def stat(self, key):
        self.calls.append(("stat", key))
        self._check()
        return Info(kind=Kind.COMMITTED, name=key, created_at=FIXED_TIME, updated_at=FIXED_TIME)

    async def update(self, info, fieldpaths):
        self.calls.append(("update", info, fieldpaths))
        self._check()
        return info

    async def usage(self, key):
        self.calls.append(("usage", key))
        self._check()
        return Usage(inodes=3, size=4096)

    async def mounts(self, key):
        self.calls.append(("mounts", key))
        self._check()
        return [Mount(type="bind", source=f"/snap/{key}")]

    async def prepare(self, key, parent, labels):
        self.calls.append(("prepare", key, parent, labels))
        self._check()
        return [Mount(type="overlay", source="overlay")]

    async def view(self, key, parent, labels):
        self.calls.append(("view", key, parent, labels))
        self._check()
        return [Mount(type="bind", options=["ro"])]

    async def commit(self, name, key, labels):
        self.calls.append(("commit", name, key, labels))
        self._check()

    async def remove(self, key):
        self.calls.append(("remove", key))
        self._check()

    async def clear(self):
        self.calls.append(("clear",))
        self._check()

    async def list(self, snapshotter, filters):
        self.calls.append(("list", snapshotter, filters))
        self._check()
        return self._iterate()

    async def _iterate(self):
        for index, info in enumerate(self.infos):
            if self.fail_list_after is not None and index == self.fail_list_after:
                raise RuntimeError("walk failed")
            yield info


async def _collect(service, request):
    return [batch async for batch in service.list(request)]


def _infos(count):
    return [
        Info(name=f"snap-{n}", created_at=FIXED_TIME, updated_at=FIXED_TIME)
        for n in range(count)
    ]


def test_server_wraps_snapshotter():
    backend = _Recorder()
    service = server(backend)
    assert isinstance(service, SnapshotsService)
    assert service.snapshotter is backend


@pytest.mark.asyncio
async def test_prepare_forwards_arguments_and_returns_mounts():
    backend = _Recorder()
    request = PrepareSnapshotRequest(key="k", parent="p", labels={"a": "b"})
    response = await server(backend).prepare(request)
    assert backend.calls == [("prepare", "k", "p", {"a": "b"})]
    assert response.mounts == [Mount(type="overlay", source="overlay")]


@pytest.mark.asyncio
async def test_view_forwards_arguments_and_returns_mounts():
    backend = _Recorder()
    response = await server(backend).view(ViewSnapshotRequest(key="v", parent="base"))
    assert backend.calls == [("view", "v", "base", {})]
    assert response.mounts == [Mount(type="bind", options=["ro"])]


@pytest.mark.asyncio
async def test_mounts_returns_backend_mounts():
    backend = _Recorder()
    response = await server(backend).mounts(MountsRequest(key="m"))
    assert response.mounts == [Mount(type="bind", source="/snap/m")]


@pytest.mark.asyncio
async def test_commit_and_remove_forward_arguments():
    backend = _Recorder()
    service = server(backend)
    await service.commit(CommitSnapshotRequest(name="n", key="k", labels={"x": "y"}))
    await service.remove(RemoveSnapshotRequest(key="k"))
    assert backend.calls == [("commit", "n", "k", {"x": "y"}), ("remove", "k")]


@pytest.mark.asyncio
async def test_stat_converts_info_to_message():
    backend = _Recorder()
    response = await server(backend).stat(StatSnapshotRequest(key="s"))
    assert response.info == info_to_message(
        Info(kind=Kind.COMMITTED, name="s", created_at=FIXED_TIME, updated_at=FIXED_TIME)
    )
    assert response.info.kind == 3


@pytest.mark.asyncio
async def test_update_requires_info():
    with pytest.raises(Status) as excinfo:
        await server(_Recorder()).update(UpdateSnapshotRequest())
    assert excinfo.value.code is StatusCode.FAILED_PRECONDITION
    assert excinfo.value.message == "info is required"


@pytest.mark.asyncio
async def test_update_rejects_bad_kind_as_invalid_argument():
    backend = _Recorder()
    request = UpdateSnapshotRequest(info=InfoMessage(name="x", kind=7))
    with pytest.raises(Status) as excinfo:
        await server(backend).update(request)
    assert excinfo.value.code is StatusCode.INVALID_ARGUMENT
    assert excinfo.value.message.startswith("Failed to convert timestamp: ")
    assert "Invalid enum value: 7" in excinfo.value.message
    assert backend.calls == []


@pytest.mark.asyncio
async def test_update_passes_field_mask_paths():
    backend = _Recorder()
    message = InfoMessage(
        name="x",
        kind=2,
        labels={"l": "v"},
        created_at=Timestamp.from_datetime(FIXED_TIME),
        updated_at=Timestamp.from_datetime(FIXED_TIME),
    )
    request = UpdateSnapshotRequest(info=message, update_mask=FieldMask(paths=["labels.l"]))
    response = await server(backend).update(request)
    (_, info, fields) = backend.calls[0]
    assert fields == ["labels.l"]
    assert info.kind is Kind.ACTIVE
    assert info.created_at == FIXED_TIME
    assert response.info == message


@pytest.mark.asyncio
async def test_update_without_mask_passes_none():
    backend = _Recorder()
    await server(backend).update(UpdateSnapshotRequest(info=InfoMessage(name="x")))
    assert backend.calls[0][2] is None


@pytest.mark.asyncio
async def test_usage_copies_size_and_inodes():
    response = await server(_Recorder()).usage(UsageRequest(key="u"))
    assert (response.size, response.inodes) == (4096, 3)


@pytest.mark.asyncio
async def test_cleanup_calls_clear():
    backend = _Recorder()
    await server(backend).cleanup(CleanupRequest())
    assert backend.calls == [("clear",)]


@pytest.mark.asyncio
async def test_backend_error_becomes_internal_status():
    backend = _Recorder(fail_with=RuntimeError("disk full"))
    with pytest.raises(Status) as excinfo:
        await server(backend).stat(StatSnapshotRequest(key="s"))
    assert excinfo.value.code is StatusCode.INTERNAL
    assert excinfo.value.message == "disk full"


@pytest.mark.asyncio
async def test_backend_status_passes_through():
    original = Status(StatusCode.NOT_FOUND, "no such snapshot")
    backend = _Recorder(fail_with=original)
    with pytest.raises(Status) as excinfo:
        await server(backend).remove(RemoveSnapshotRequest(key="gone"))
    assert excinfo.value is original


@pytest.mark.asyncio
async def test_list_empty_yields_nothing():
    backend = _Recorder()
    batches = await _collect(server(backend), ListSnapshotsRequest(snapshotter="s", filters=["f"]))
    assert batches == []
    assert backend.calls == [("list", "s", ["f"])]


@pytest.mark.asyncio
async def test_list_exact_batch_size_yields_one_batch():
    infos = _infos(LIST_BATCH_SIZE)
    batches = await _collect(server(_Recorder(infos)), ListSnapshotsRequest())
    assert len(batches) == 1
    assert [m.name for m in batches[0].info] == [i.name for i in infos]


@pytest.mark.asyncio
async def test_list_splits_into_batches_preserving_order():
    infos = _infos(2 * LIST_BATCH_SIZE + 50)
    batches = await _collect(server(_Recorder(infos)), ListSnapshotsRequest())
    assert all(len(b.info) <= LIST_BATCH_SIZE for b in batches)
    assert [len(b.info) for b in batches[:-1]] == [LIST_BATCH_SIZE, LIST_BATCH_SIZE]
    names = [m.name for b in batches for m in b.info]
    assert names == [i.name for i in infos]


@pytest.mark.asyncio
async def test_list_error_during_walk_becomes_status_after_full_batches():
    infos = _infos(LIST_BATCH_SIZE + 5)
    backend = _Recorder(infos, fail_list_after=LIST_BATCH_SIZE + 2)
    received = []
    with pytest.raises(Status) as excinfo:
        async for batch in server(backend).list(ListSnapshotsRequest()):
            received.append(batch)
    assert excinfo.value.code is StatusCode.INTERNAL
    assert excinfo.value.message == "walk failed"
    assert len(received) == 1
    assert len(received[0].info) == LIST_BATCH_SIZE


@pytest.mark.asyncio
async def test_list_error_from_backend_call_becomes_status():
    backend = _Recorder(fail_with=ValueError("bad filter"))
    with pytest.raises(Status) as excinfo:
        await _collect(server(backend), ListSnapshotsRequest(filters=["x"]))
    assert excinfo.value.code is StatusCode.INTERNAL
    assert excinfo.value.message == "bad filter"