"""Signal K delta ingestion.

Translates ``{"updates": [{"timestamp": ..., "values": [{"path": ..., "value": ...}]}]}``
documents into samples and hands them to a :class:`TripController` in the
order they appear.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from pytriplog._constants import PATH_POSITION, PATH_SPEED_THROUGH_WATER, PATH_STATE
from pytriplog.controller import TripController
from pytriplog.ingestion.normalize import parse_timestamp
from pytriplog.models.samples import PositionSample, SpeedSample, StateSample
from pytriplog.rotation.manager import BatchResult

_logger = logging.getLogger(__name__)


class DeltaDispatcher:
    """Route delta values to the controller.

    Position and speed samples closer together than *min_interval_ms*
    (by sample timestamp) are skipped, mirroring a subscription period.
    Malformed samples never use up an interval slot.  State samples are
    never skipped.
    """

    def __init__(self, controller: TripController, *, min_interval_ms: int = 0) -> None:
        self._controller = controller
        self._min_interval = timedelta(milliseconds=max(0, min_interval_ms))
        self._last_accepted: dict[str, datetime] = {}

    def dispatch(self, delta: Any) -> BatchResult:
        result = BatchResult()
        if not isinstance(delta, dict):
            return result
        updates = delta.get("updates")
        if not isinstance(updates, list):
            return result
        for update in updates:
            if not isinstance(update, dict) or not isinstance(update.get("values"), list):
                continue
            timestamp = parse_timestamp(update.get("timestamp"))
            for entry in update["values"]:
                if not isinstance(entry, dict):
                    continue
                result.merge(self._dispatch_value(entry.get("path"), entry.get("value"), timestamp))
        return result

    def _dispatch_value(self, path: Any, value: Any, timestamp: datetime | None) -> BatchResult:
        extra: dict[str, Any] = {"timestamp": timestamp} if timestamp is not None else {}
        try:
            if path == PATH_STATE:
                return self._controller.handle_state(StateSample(state=value, **extra))
            if path == PATH_POSITION:
                if not isinstance(value, dict):
                    return BatchResult()
                position = PositionSample.model_validate({**value, **extra})
                if position.is_valid and self._throttled(path, position.timestamp):
                    return BatchResult()
                return self._controller.handle_position(position)
            if path == PATH_SPEED_THROUGH_WATER:
                speed = SpeedSample(speed=value, **extra)
                if speed.is_valid and self._throttled(path, speed.timestamp):
                    return BatchResult()
                return self._controller.handle_speed(speed)
        except ValidationError:
            _logger.debug("Discarding unparseable value for %s: %r", path, value, exc_info=True)
        return BatchResult()

    def _throttled(self, path: str, timestamp: datetime) -> bool:
        if not self._min_interval:
            return False
        last = self._last_accepted.get(path)
        if last is not None and timestamp - last < self._min_interval:
            return True
        self._last_accepted[path] = timestamp
        return False


def dispatch_delta(controller: TripController, delta: Any) -> BatchResult:
    """Dispatch a single delta document without throttling."""
    return DeltaDispatcher(controller).dispatch(delta)
