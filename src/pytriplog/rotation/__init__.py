"""Period resolution and accumulator rotation.

This package is the only owner of the set of open accumulators.  Callers get
references to read and update them, but opening and closing happens in
:class:`pytriplog.rotation.manager.RotationManager`.
"""

from pytriplog.rotation.manager import AccumulatorFailure, BatchResult, FailedOperation, RotationManager
from pytriplog.rotation.periods import PeriodWindow, resolve_periods

__all__ = [
    "AccumulatorFailure",
    "BatchResult",
    "FailedOperation",
    "PeriodWindow",
    "RotationManager",
    "resolve_periods",
]
