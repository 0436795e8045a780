"""Durable storage for accumulator records."""

from pytriplog.storage.backend import FileStorageBackend, StorageBackend
from pytriplog.storage.store import AccumulatorStore

__all__ = [
    "AccumulatorStore",
    "FileStorageBackend",
    "StorageBackend",
]
