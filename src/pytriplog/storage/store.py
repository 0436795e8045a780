"""Accumulator persistence.

Maps an accumulator identity to a JSON record in a :class:`StorageBackend`
and translates backend failures into the pytriplog exception hierarchy.
"""

from __future__ import annotations

import logging
import re

from pytriplog.exceptions import AccumulatorNotFoundError, InvalidInputError, StorageIOError
from pytriplog.models.accumulator import DistanceAccumulator
from pytriplog.storage.backend import StorageBackend

_logger = logging.getLogger(__name__)

_IDENTITY_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def record_name(identity: str) -> str:
    """Backend resource name for *identity*."""
    if not _IDENTITY_RE.match(identity):
        raise InvalidInputError(f"Invalid accumulator identity: {identity!r}")
    return f"{identity}.json"


class AccumulatorStore:
    """Load and save accumulators, one record per identity."""

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def exists(self, identity: str) -> bool:
        name = record_name(identity)
        try:
            return self._backend.exists(name)
        except OSError as exc:
            raise StorageIOError(f"Cannot stat record {identity!r}: {exc}", identity=identity) from exc

    def load(self, identity: str) -> DistanceAccumulator:
        """Load the accumulator stored under *identity*.

        Raises
        ------
        AccumulatorNotFoundError
            No record exists.
        CorruptDataError
            The record does not parse into a valid accumulator.
        StorageIOError
            The backend failed to read the record.
        """
        name = record_name(identity)
        try:
            data = self._backend.read(name)
        except FileNotFoundError as exc:
            raise AccumulatorNotFoundError(f"No record for {identity!r}", identity=identity) from exc
        except OSError as exc:
            raise StorageIOError(f"Cannot read record {identity!r}: {exc}", identity=identity) from exc
        accumulator = DistanceAccumulator.deserialize(identity, data)
        _logger.debug("Loaded accumulator %s: %s", identity, accumulator)
        return accumulator

    def save(self, accumulator: DistanceAccumulator) -> bool:
        """Persist *accumulator* if it is dirty.

        Returns ``True`` when a write happened.  On failure the accumulator
        stays dirty and :class:`StorageIOError` is raised.
        """
        if not accumulator.dirty:
            return False
        name = record_name(accumulator.identity)
        try:
            self._backend.write(name, accumulator.serialize())
        except OSError as exc:
            raise StorageIOError(
                f"Cannot write record {accumulator.identity!r}: {exc}",
                identity=accumulator.identity,
            ) from exc
        accumulator.mark_clean()
        _logger.debug("Saved accumulator %s: %s", accumulator.identity, accumulator)
        return True
