"""Data models for accumulators and incoming samples."""

from pytriplog.models.accumulator import DistanceAccumulator
from pytriplog.models.samples import PositionSample, SpeedSample, StateSample

__all__ = [
    "DistanceAccumulator",
    "PositionSample",
    "SpeedSample",
    "StateSample",
]
