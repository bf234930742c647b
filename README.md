# snapshotter

Building blocks for writing a container snapshotter in Python, using only the
standard library.

A snapshotter allocates, snapshots and mounts filesystem changesets. Snapshots
form parent/child chains: every snapshot has a parent, and the empty parent is
written as the empty string.

## Modules

- `snapshotter.types`: the snapshot model and the interface you implement.
  - `Kind`: `UNKNOWN`, `VIEW`, `ACTIVE`, `COMMITTED`.
  - `Info`: `kind`, `name`, `parent`, `labels`, `created_at`, `updated_at`.
    Both timestamps default to the current time in UTC.
  - `Usage`: `inodes` and `size`. Supports `+` and `+=`, which add field by field.
  - `Mount`: `type`, `source`, `target`, `options`.
  - `Snapshotter`: an abstract base class with the coroutines `stat`, `update`,
    `usage`, `mounts`, `prepare`, `view`, `commit`, `remove`, `list` and `clear`.
- `snapshotter.messages`: dataclasses for the requests and responses of the
  snapshots service, for example `PrepareSnapshotRequest`, `StatSnapshotResponse`,
  `UpdateSnapshotRequest` and `ListSnapshotsResponse`. The module also holds
  `InfoMessage`, `FieldMask` and `Timestamp`.
  - `Timestamp.from_datetime(value)` treats a naive datetime as UTC.
  - `Timestamp.to_datetime()` returns an aware UTC datetime. It raises
    `ValueError` when the value is out of range.
- `snapshotter.convert`: conversions between the model and the messages, and the
  service's errors.
  - `kind_to_int` and `kind_from_int` map each `Kind` to the numbers 0 to 3.
    `kind_from_int` raises `InvalidEnumValueError` for any other number.
  - `info_to_message` and `info_from_message` convert between `Info` and
    `InfoMessage`. A missing timestamp becomes the Unix epoch, and a timestamp
    that cannot be converted raises `TimestampConversionError`. Both error classes
    derive from `ConversionError`.
  - `Status` is an exception that carries a `StatusCode` and a message.
    `status_from_error` passes a `Status` through unchanged and turns any other
    error into an `INTERNAL` status.
- `snapshotter.server`: `server(snapshotter)` wraps your implementation in a
  `SnapshotsService`. That class has one coroutine per request: `prepare`, `view`,
  `mounts`, `commit`, `remove`, `stat`, `update`, `usage` and `cleanup`. Its
  `list` is an async generator.
- `snapshotter.example`: `ExampleSnapshotter`, which logs each call to the
  `snapshotter.example` logger at INFO level. It returns default values, empty
  mount lists and no snapshots.

## Writing a snapshotter

Subclass `Snapshotter` and implement every abstract coroutine. Report failures by
raising exceptions.

`list` is a coroutine that returns an asynchronous iterator of `Info`. `clear` is
optional and does nothing by default.

```python
from snapshotter.types import Info, Kind, Mount, Snapshotter, Usage


async def _nothing():
    for info in ():
        yield info


class MySnapshotter(Snapshotter):
    async def stat(self, key):
        return Info(kind=Kind.COMMITTED, name=key)

    async def update(self, info, fieldpaths):
        return info

    async def usage(self, key):
        return Usage(inodes=1, size=4096)

    async def mounts(self, key):
        return [Mount(type="bind", source=f"/var/snapshots/{key}", options=["rbind"])]

    async def prepare(self, key, parent, labels):
        return await self.mounts(key)

    async def view(self, key, parent, labels):
        return await self.mounts(key)

    async def commit(self, name, key, labels):
        pass

    async def remove(self, key):
        pass

    async def list(self, snapshotter, filters):
        return _nothing()
```

## Handling requests

```python
import asyncio

from snapshotter.example import ExampleSnapshotter
from snapshotter.messages import StatSnapshotRequest
from snapshotter.server import server


async def main():
    service = server(ExampleSnapshotter())
    response = await service.stat(StatSnapshotRequest(key="layer-1"))
    print(response.info)


asyncio.run(main())
```

How `SnapshotsService` behaves:

- Any exception raised by the wrapped snapshotter is raised again as a `Status`.
  A `Status` raised by the snapshotter is kept as it is. Any other exception
  becomes an `INTERNAL` status.
- `update` raises a `FAILED_PRECONDITION` status when the request has no `info`.
  It raises an `INVALID_ARGUMENT` status when the info's kind or timestamps
  cannot be converted.
- `update` passes the paths of the request's `update_mask` to the snapshotter as
  `fieldpaths`. If there is no mask, it passes `None`.
- `list` yields `ListSnapshotsResponse` messages that hold at most 100 snapshots
  each (`LIST_BATCH_SIZE`). When there are no snapshots, it yields nothing.
- `commit`, `remove` and `cleanup` return `None`. `cleanup` calls the
  snapshotter's `clear`.

## What this package does not do

The package handles requests that arrive as Python objects. It does not:

- listen on a socket or run a network server;
- encode or decode messages in any wire format;
- provide a command-line program.

To serve a snapshotter to other processes, connect `SnapshotsService` to a
transport of your own.