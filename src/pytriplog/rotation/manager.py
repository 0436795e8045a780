"""Open/close accumulators as calendar periods come in and out of scope."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pytriplog._constants import CURRENT_IDENTITY
from pytriplog.exceptions import AccumulatorNotFoundError, CorruptDataError, StorageIOError, TripLogError
from pytriplog.models.accumulator import DistanceAccumulator
from pytriplog.rotation.periods import PeriodWindow, resolve_periods
from pytriplog.storage.store import AccumulatorStore

_logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class FailedOperation(StrEnum):
    LOAD = "load"
    SAVE = "save"
    CLOSE = "close"


@dataclass(frozen=True, slots=True)
class AccumulatorFailure:
    """A persistence failure for a single identity."""

    identity: str
    operation: FailedOperation
    error: TripLogError


@dataclass(slots=True)
class BatchResult:
    """Outcome of one reconcile/persist cycle.

    Failures are collected per identity; one failing accumulator never stops
    the others from being processed.
    """

    opened: list[str] = field(default_factory=list)
    closed: list[str] = field(default_factory=list)
    saved: list[str] = field(default_factory=list)
    failures: list[AccumulatorFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_identities(self) -> list[str]:
        return sorted({failure.identity for failure in self.failures})

    def merge(self, other: BatchResult) -> BatchResult:
        self.opened.extend(other.opened)
        self.closed.extend(other.closed)
        self.saved.extend(other.saved)
        self.failures.extend(other.failures)
        return self


class RotationManager:
    """Owner of the open accumulator set.

    :meth:`reconcile` is cheap when nothing changed and is meant to run on
    every incoming sample, so rotation is driven by sample arrival rather
    than by a timer.
    """

    def __init__(
        self,
        store: AccumulatorStore,
        *,
        windows: Iterable[PeriodWindow] = tuple(PeriodWindow),
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._store = store
        self._windows = frozenset(PeriodWindow(window) for window in windows)
        self._clock = clock
        self._open: dict[str, DistanceAccumulator] = {}
        # Closed accumulators whose final save failed; retried every cycle.
        self._closing: dict[str, DistanceAccumulator] = {}

    @property
    def windows(self) -> frozenset[PeriodWindow]:
        return self._windows

    @property
    def identities(self) -> tuple[str, ...]:
        return tuple(self._open)

    @property
    def pending_close(self) -> tuple[str, ...]:
        return tuple(self._closing)

    def __contains__(self, identity: object) -> bool:
        return identity in self._open

    def get(self, identity: str) -> DistanceAccumulator | None:
        return self._open.get(identity)

    @property
    def current(self) -> DistanceAccumulator | None:
        return self._open.get(CURRENT_IDENTITY)

    def accumulators(self) -> tuple[DistanceAccumulator, ...]:
        return tuple(self._open.values())

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, now: datetime | None = None) -> BatchResult:
        """Bring the open set in line with the periods wanted at *now*."""
        now = now if now is not None else self._clock()
        wanted = resolve_periods(now, self._windows)
        result = BatchResult()

        self._retry_pending_close(result)

        for identity in [identity for identity in self._open if identity not in wanted]:
            accumulator = self._open.pop(identity)
            accumulator.close(now)
            _logger.info("Closing accumulator %s: %s", identity, accumulator)
            self._persist_closed(accumulator, result)

        for identity in wanted:
            if identity in self._open:
                continue
            try:
                accumulator = self._open_accumulator(identity, now)
            except (CorruptDataError, StorageIOError) as exc:
                _logger.warning("Cannot open accumulator %s, retrying next cycle: %s", identity, exc)
                result.failures.append(AccumulatorFailure(identity, FailedOperation.LOAD, exc))
                continue
            self._open[identity] = accumulator
            result.opened.append(identity)

        return result

    def _open_accumulator(self, identity: str, now: datetime) -> DistanceAccumulator:
        if self._store.exists(identity):
            try:
                accumulator = self._store.load(identity)
            except AccumulatorNotFoundError:
                pass
            else:
                _logger.debug("Resumed accumulator %s: %s", identity, accumulator)
                return accumulator
        _logger.debug("Created accumulator %s", identity)
        return DistanceAccumulator.create(identity, now)

    def _persist_closed(self, accumulator: DistanceAccumulator, result: BatchResult) -> None:
        try:
            self._store.save(accumulator)
        except StorageIOError as exc:
            _logger.warning("Cannot persist closed accumulator %s: %s", accumulator.identity, exc)
            self._closing[accumulator.identity] = accumulator
            result.failures.append(AccumulatorFailure(accumulator.identity, FailedOperation.CLOSE, exc))
            return
        self._closing.pop(accumulator.identity, None)
        result.closed.append(accumulator.identity)

    def _retry_pending_close(self, result: BatchResult) -> None:
        for accumulator in list(self._closing.values()):
            self._persist_closed(accumulator, result)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist(self) -> BatchResult:
        """Save every dirty open accumulator and retry pending closes."""
        result = BatchResult()
        self._retry_pending_close(result)
        for identity, accumulator in self._open.items():
            try:
                if self._store.save(accumulator):
                    result.saved.append(identity)
            except StorageIOError as exc:
                _logger.warning("Cannot persist accumulator %s: %s", identity, exc)
                result.failures.append(AccumulatorFailure(identity, FailedOperation.SAVE, exc))
        return result
