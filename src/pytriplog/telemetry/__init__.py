"""Telemetry sinks for trip values and status."""

from pytriplog.telemetry.sink import MemoryTelemetrySink, NullTelemetrySink, TelemetrySink, TelemetryUpdate

__all__ = [
    "MemoryTelemetrySink",
    "NullTelemetrySink",
    "TelemetrySink",
    "TelemetryUpdate",
]
