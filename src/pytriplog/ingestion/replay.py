"""Replay of recorded Signal K deltas.

The controller's clock is driven by the recorded timestamps, converted to
local time like the live clock, so calendar periods rotate as they did
when the recording was made.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pytriplog.controller import TripController
from pytriplog.ingestion.delta import DeltaDispatcher
from pytriplog.ingestion.normalize import parse_timestamp
from pytriplog.rotation.manager import BatchResult

_logger = logging.getLogger(__name__)


class ReplayClock:
    """Clock that follows delta timestamps and never moves backwards.

    Until the first timestamp is seen it reports the current local time.
    """

    def __init__(self) -> None:
        self.now: datetime | None = None

    def __call__(self) -> datetime:
        if self.now is None:
            return datetime.now().astimezone()
        return self.now

    def advance(self, delta: Any) -> None:
        if not isinstance(delta, dict):
            return
        for update in delta.get("updates") or []:
            if not isinstance(update, dict):
                continue
            ts = parse_timestamp(update.get("timestamp"))
            if ts is None:
                continue
            ts = ts.astimezone()
            if self.now is None or ts > self.now:
                self.now = ts


def replay_lines(
    lines: Iterable[str],
    controller: TripController,
    clock: ReplayClock,
    *,
    dispatcher: DeltaDispatcher | None = None,
) -> BatchResult:
    """Feed JSON-lines deltas to *controller*, starting it on the first delta.

    Unparseable lines are logged and skipped.  The controller is stopped
    (flushed) at the end and the merged persistence result is returned.
    """
    dispatcher = dispatcher or DeltaDispatcher(controller)
    result = BatchResult()
    started = False
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            delta = json.loads(line)
        except json.JSONDecodeError as exc:
            _logger.warning("line %d: skipped, %s", line_no, exc)
            continue
        clock.advance(delta)
        if not started:
            result.merge(controller.start())
            started = True
        result.merge(dispatcher.dispatch(delta))
    result.merge(controller.stop())
    return result
