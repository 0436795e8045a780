"""pytriplog - Multi-period trip and distance logger for vessels."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytriplog")
except PackageNotFoundError:
    __version__ = "0+local"
from pytriplog.app import TripLogger
from pytriplog.config import DistanceSource, TripLogConfig
from pytriplog.controller import TripController, TripPhase
from pytriplog.exceptions import (
    AccumulatorNotFoundError,
    CorruptDataError,
    InvalidInputError,
    StorageIOError,
    TripLogConfigError,
    TripLogError,
)
from pytriplog.models import DistanceAccumulator, PositionSample, SpeedSample, StateSample
from pytriplog.rotation import AccumulatorFailure, BatchResult, PeriodWindow, RotationManager, resolve_periods
from pytriplog.storage import AccumulatorStore, FileStorageBackend
from pytriplog.telemetry import MemoryTelemetrySink, TelemetryUpdate

__all__ = [
    "__version__",
    "AccumulatorFailure",
    "AccumulatorNotFoundError",
    "AccumulatorStore",
    "BatchResult",
    "CorruptDataError",
    "DistanceAccumulator",
    "DistanceSource",
    "FileStorageBackend",
    "InvalidInputError",
    "MemoryTelemetrySink",
    "PeriodWindow",
    "PositionSample",
    "RotationManager",
    "SpeedSample",
    "StateSample",
    "StorageIOError",
    "TelemetryUpdate",
    "TripController",
    "TripLogConfig",
    "TripLogConfigError",
    "TripLogError",
    "TripLogger",
    "TripPhase",
    "resolve_periods",
]
