"""Custom exception hierarchy for pytriplog."""

from __future__ import annotations


class TripLogError(Exception):
    """Base exception for all pytriplog errors."""


class TripLogConfigError(TripLogError):
    """Invalid or missing configuration."""


class InvalidInputError(TripLogError):
    """Rejected input (negative/non-finite distance, malformed sample or identity)."""


class _AccumulatorError(TripLogError):
    """Failure tied to a single accumulator identity."""

    def __init__(self, message: str, *, identity: str) -> None:
        self.identity = identity
        super().__init__(message)


class AccumulatorNotFoundError(_AccumulatorError):
    """No durable record exists for the requested identity."""


class CorruptDataError(_AccumulatorError):
    """Stored record could not be parsed into a valid accumulator.

    The record is left untouched on disk.  Callers must not replace it
    with a fresh accumulator, since that would silently discard history.
    """


class StorageIOError(_AccumulatorError):
    """Read or write failure in the storage backend.

    The accumulator involved stays dirty so the next save retries it.
    """
