from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pytriplog.storage.store import AccumulatorStore


class MemoryBackend:
    """In-memory storage backend with switchable failures."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.writes: list[str] = []
        self.fail_writes: set[str] = set()
        self.fail_reads: set[str] = set()

    def exists(self, name: str) -> bool:
        return name in self.blobs

    def read(self, name: str) -> bytes:
        if name in self.fail_reads:
            raise OSError(f"read failed: {name}")
        if name not in self.blobs:
            raise FileNotFoundError(name)
        return self.blobs[name]

    def write(self, name: str, data: bytes) -> None:
        if name in self.fail_writes:
            raise OSError(f"disk full: {name}")
        self.blobs[name] = data
        self.writes.append(name)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


HELSINKI = timezone(timedelta(hours=2))


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> AccumulatorStore:
    return AccumulatorStore(backend)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 17, 10, 0, tzinfo=HELSINKI))
