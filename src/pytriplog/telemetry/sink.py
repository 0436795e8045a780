"""Telemetry sink protocol and in-process sinks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class TelemetryUpdate:
    """Timestamped key/value update plus an optional human-readable status."""

    timestamp: datetime
    values: dict[str, Any] = field(default_factory=dict)
    status: str | None = None


class TelemetrySink(Protocol):
    def publish(self, update: TelemetryUpdate) -> None: ...


class NullTelemetrySink:
    """Discard every update."""

    def publish(self, update: TelemetryUpdate) -> None:
        return None


class MemoryTelemetrySink:
    """Keep every update in memory, e.g. for tests or a status endpoint."""

    def __init__(self) -> None:
        self.updates: list[TelemetryUpdate] = []

    def publish(self, update: TelemetryUpdate) -> None:
        self.updates.append(update)

    @property
    def statuses(self) -> list[str]:
        return [update.status for update in self.updates if update.status is not None]

    @property
    def last_status(self) -> str | None:
        statuses = self.statuses
        return statuses[-1] if statuses else None

    def latest(self, path: str) -> Any:
        """Most recent value published for *path*, or ``None``."""
        for update in reversed(self.updates):
            if path in update.values:
                return update.values[path]
        return None
