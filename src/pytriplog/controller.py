"""Trip state machine.

The controller consumes state and position/speed samples in arrival order,
decides when a trip starts, feeds distance into every open accumulator and
reports progress to a telemetry sink.

Phases::

    UNKNOWN --moving state--> MOVING   (trip start: "current" is reset)
    STOPPED --moving state--> MOVING   (trip start: "current" is reset)
    MOVING  --other state---> STOPPED  (trip ends implicitly, nothing reset)

Distance is only attributed while the phase is ``MOVING``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Any

from pytriplog._constants import (
    PATH_LOG,
    PATH_TRIP_LAST_RESET,
    PATH_TRIP_LOG,
    TOTAL_IDENTITY,
)
from pytriplog.config import DistanceSource, TripLogConfig
from pytriplog.geodesy import distance, meters_to_nautical_miles
from pytriplog.models.samples import PositionSample, SpeedSample, StateSample
from pytriplog.rotation.manager import BatchResult, RotationManager
from pytriplog.storage.store import AccumulatorStore
from pytriplog.telemetry.sink import NullTelemetrySink, TelemetrySink, TelemetryUpdate

_logger = logging.getLogger(__name__)

STATUS_WAITING = "Waiting for updates"
STATUS_TRIP_STARTED = "New trip has started. Log reset"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class TripPhase(StrEnum):
    UNKNOWN = "unknown"
    MOVING = "moving"
    STOPPED = "stopped"


class TripController:
    """Drive the open accumulators from a single stream of samples.

    Usage::

        store = AccumulatorStore(FileStorageBackend(config.storage_dir))
        controller = TripController(config, store, sink=sink)
        controller.start()
        controller.handle_state(StateSample(state="sailing"))
        controller.handle_position(PositionSample(latitude=60.1, longitude=24.9))
    """

    def __init__(
        self,
        config: TripLogConfig,
        store: AccumulatorStore,
        *,
        sink: TelemetrySink | None = None,
        geodesy: Callable[[PositionSample, PositionSample], float] = distance,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._config = config
        self._sink: TelemetrySink = sink or NullTelemetrySink()
        self._geodesy = geodesy
        self._clock = clock
        self._rotation = RotationManager(store, windows=config.enabled_windows, clock=clock)
        self._phase = TripPhase.UNKNOWN
        self._state: str | None = None
        self._last_position: PositionSample | None = None
        self._last_speed: SpeedSample | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def config(self) -> TripLogConfig:
        return self._config

    @property
    def rotation(self) -> RotationManager:
        return self._rotation

    @property
    def phase(self) -> TripPhase:
        return self._phase

    @property
    def state(self) -> str | None:
        return self._state

    @property
    def in_trip(self) -> bool:
        return self._phase is TripPhase.MOVING

    @property
    def last_position(self) -> PositionSample | None:
        return self._last_position

    @property
    def last_speed(self) -> SpeedSample | None:
        return self._last_speed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> BatchResult:
        """Open (create or resume) the accumulators for the current periods."""
        now = self._clock()
        result = self._reconcile(now)
        result.merge(self._rotation.persist())
        self._publish(now, {}, STATUS_WAITING, result)
        return result

    def stop(self) -> BatchResult:
        """Flush every dirty accumulator.  Nothing is closed."""
        return self._rotation.persist()

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    def handle_state(self, sample: StateSample) -> BatchResult:
        """Apply an operating-state change, starting a trip if needed."""
        if not sample.is_valid or sample.state is None:
            _logger.debug("Discarding state sample without a state: %s", sample)
            return BatchResult()
        now = self._clock()
        result = self._reconcile(now)

        state = sample.state
        previous = self._phase
        self._state = state
        for accumulator in self._rotation.accumulators():
            accumulator.set_state(state)
        self._phase = TripPhase.MOVING if state in self._config.moving_states else TripPhase.STOPPED

        values: dict[str, Any] = {}
        if self._phase is TripPhase.MOVING and previous is not TripPhase.MOVING:
            self._start_trip(now, values)
            status = STATUS_TRIP_STARTED
        else:
            # Switching between moving states inside a trip is not a new trip.
            if previous is TripPhase.MOVING and self._phase is TripPhase.STOPPED:
                _logger.debug("Trip ended in state %s", state)
            status = self._trip_status()

        result.merge(self._rotation.persist())
        self._publish(now, values, status, result)
        return result

    def handle_position(self, sample: PositionSample) -> BatchResult:
        """Accumulate the distance from the previous position fix."""
        if self._config.distance_source is not DistanceSource.POSITION:
            _logger.debug("Ignoring position sample, distance source is %s", self._config.distance_source)
            return BatchResult()
        if not sample.is_valid:
            _logger.debug("Discarding malformed position sample: %s", sample)
            return BatchResult()

        previous = self._last_position
        self._last_position = sample
        if previous is None or not self.in_trip:
            return BatchResult()
        return self._append(self._geodesy(previous, sample))

    def handle_speed(self, sample: SpeedSample) -> BatchResult:
        """Integrate speed through water over the time since the previous sample."""
        if self._config.distance_source is not DistanceSource.SPEED_THROUGH_WATER:
            _logger.debug("Ignoring speed sample, distance source is %s", self._config.distance_source)
            return BatchResult()
        if not sample.is_valid or sample.speed is None:
            _logger.debug("Discarding malformed speed sample: %s", sample)
            return BatchResult()

        previous = self._last_speed
        if previous is not None and sample.timestamp <= previous.timestamp:
            _logger.debug("Speed sample not newer than the previous one, no distance added")
            return BatchResult()
        self._last_speed = sample
        if previous is None or not self.in_trip:
            return BatchResult()
        elapsed = (sample.timestamp - previous.timestamp).total_seconds()
        return self._append(sample.speed * elapsed)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reconcile(self, now: datetime) -> BatchResult:
        result = self._rotation.reconcile(now)
        if self._state is not None:
            # Periods opened mid-trip attribute distance to the known state.
            for identity in result.opened:
                accumulator = self._rotation.get(identity)
                if accumulator is not None:
                    accumulator.set_state(self._state)
        return result

    def _start_trip(self, now: datetime, values: dict[str, Any]) -> None:
        # Speed sampled before the trip started is not a baseline for integration.
        self._last_speed = None
        current = self._rotation.current
        if current is None:
            _logger.warning("Trip started but the current trip accumulator is not available")
            return
        _logger.debug("Reset trip. Was %sm", current.total_distance)
        current.reset(now)
        values[PATH_TRIP_LOG] = current.total_distance
        values[PATH_TRIP_LAST_RESET] = current.started_at.isoformat()
        total = self._rotation.get(TOTAL_IDENTITY)
        if total is not None:
            values[PATH_LOG] = total.total_distance

    def _append(self, delta: float) -> BatchResult:
        if not math.isfinite(delta) or delta < 0:
            _logger.debug("Discarding invalid distance delta %s", delta)
            return BatchResult()
        now = self._clock()
        result = self._reconcile(now)

        current = self._rotation.current
        if current is not None:
            _logger.debug("Append trip by %sm. Was %sm", delta, current.total_distance)
        for accumulator in self._rotation.accumulators():
            accumulator.append_distance(delta)
        result.merge(self._rotation.persist())

        values: dict[str, Any] = {}
        if current is not None:
            values[PATH_TRIP_LOG] = current.total_distance
        total = self._rotation.get(TOTAL_IDENTITY)
        if total is not None:
            values[PATH_LOG] = total.total_distance
        self._publish(now, values, self._trip_status(), result)
        return result

    def _trip_status(self) -> str:
        current = self._rotation.current
        trip_nm = meters_to_nautical_miles(current.total_distance) if current is not None else 0.0
        if self.in_trip:
            return f"Trip under way, current distance {trip_nm:.2f}NM"
        return f"Stopped. Last trip {trip_nm:.2f}NM"

    def _publish(self, now: datetime, values: dict[str, Any], status: str, result: BatchResult) -> None:
        if not result.ok:
            status = f"{status}. Failed to persist {', '.join(result.failed_identities)}"
        try:
            self._sink.publish(TelemetryUpdate(timestamp=now, values=values, status=status))
        except Exception:
            _logger.warning("Telemetry sink failed to accept update", exc_info=True)
