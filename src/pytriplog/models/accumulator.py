"""Distance accumulator model.

A :class:`DistanceAccumulator` is one named counter (current trip, a
calendar year/month/day, or all-time) holding the total distance and the
distance attributed to each operating state.  It serializes to the JSON
record stored by :class:`pytriplog.storage.store.AccumulatorStore`::

    {
      "started": "2024-03-17T08:00:00Z",
      "ended": null,
      "total": 1234.5,
      "states": {"sailing": 1000.0, "motoring": 234.5}
    }

Timestamps are always supplied by the caller so that the owner (usually the
rotation manager) controls the clock.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

from pytriplog.exceptions import CorruptDataError, InvalidInputError
from pytriplog.geodesy import meters_to_nautical_miles

Meters = Annotated[float, Field(ge=0, allow_inf_nan=False)]

_RECORD_FIELDS = frozenset({"started_at", "ended_at", "total_distance", "distance_by_state"})


class DistanceAccumulator(BaseModel):
    """A single distance counter for one period identity.

    Parameters
    ----------
    identity : str
        Period key, e.g. ``"current"``, ``"total"``, ``"2024"``,
        ``"2024-03"`` or ``"2024-03-17"``.  Not part of the stored record.
    started_at : datetime
        When counting started.  Only :meth:`reset` changes it.
    ended_at : datetime or None
        Set once by :meth:`close`.  A closed accumulator never changes again.
    total_distance : float
        Meters travelled, including distance with no known state.
    distance_by_state : dict
        Meters travelled per operating state.
    current_state : str or None
        Last state applied.  Transient; not persisted.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    identity: str = Field(exclude=True)
    started_at: datetime = Field(alias="started")
    ended_at: datetime | None = Field(default=None, alias="ended")
    total_distance: Meters = Field(default=0.0, alias="total")
    distance_by_state: dict[str, Meters] = Field(default_factory=dict, alias="states")
    current_state: str | None = Field(default=None, exclude=True)

    _dirty: bool = PrivateAttr(default=False)

    @field_validator("started_at", "ended_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, identity: str, now: datetime) -> DistanceAccumulator:
        """Create a fresh, dirty accumulator starting at *now*."""
        accumulator = cls(identity=identity, started_at=now)
        accumulator._dirty = True
        return accumulator

    @classmethod
    def from_record(cls, identity: str, record: Mapping[str, Any]) -> DistanceAccumulator:
        """Hydrate from a stored record.  The result is clean (not dirty)."""
        return cls.model_validate({**record, "identity": identity})

    @classmethod
    def deserialize(cls, identity: str, data: bytes) -> DistanceAccumulator:
        """Parse stored bytes.

        Raises
        ------
        CorruptDataError
            If *data* is not a JSON object describing a valid accumulator.
        """
        try:
            record = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptDataError(f"Record {identity!r} is not valid JSON: {exc}", identity=identity) from exc
        if not isinstance(record, dict):
            raise CorruptDataError(f"Record {identity!r} is not a JSON object", identity=identity)
        try:
            return cls.from_record(identity, record)
        except ValidationError as exc:
            raise CorruptDataError(f"Record {identity!r} is invalid: {exc}", identity=identity) from exc

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        """Whether in-memory state differs from the last persisted state."""
        return self._dirty

    def mark_clean(self) -> None:
        self._dirty = False

    @property
    def is_closed(self) -> bool:
        return self.ended_at is not None

    @property
    def attributed_distance(self) -> float:
        """Sum of the per-state buckets (never more than the total)."""
        return math.fsum(self.distance_by_state.values())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append_distance(self, delta_meters: float) -> None:
        """Add *delta_meters* to the total and to the current state's bucket.

        Does nothing once closed.  Gating on whether a trip is under way is
        the caller's job.

        Raises
        ------
        InvalidInputError
            If *delta_meters* is negative, NaN or infinite.
        """
        if isinstance(delta_meters, bool) or not isinstance(delta_meters, (int, float)):
            raise InvalidInputError(f"Distance delta must be a number, got {delta_meters!r}")
        if not math.isfinite(delta_meters) or delta_meters < 0:
            raise InvalidInputError(f"Distance delta must be finite and >= 0, got {delta_meters!r}")
        if self.is_closed:
            return
        self.total_distance += delta_meters
        state = self.current_state
        if state is not None:
            self.distance_by_state[state] = self.distance_by_state.get(state, 0.0) + delta_meters
        self._dirty = True

    def set_state(self, state: str) -> None:
        """Switch the operating state used for attribution.

        Past distance is never re-attributed.
        """
        if self.is_closed or state == self.current_state:
            return
        self.current_state = state
        self.distance_by_state.setdefault(state, 0.0)
        self._dirty = True

    def close(self, now: datetime) -> None:
        """Finalize the accumulator.  Idempotent."""
        if self.is_closed:
            return
        self.ended_at = now
        self._dirty = True

    def reset(self, now: datetime) -> None:
        """Start counting from zero at *now*, keeping the current state."""
        if self.is_closed:
            return
        self.started_at = now
        self.total_distance = 0.0
        self.distance_by_state = {}
        if self.current_state is not None:
            self.distance_by_state[self.current_state] = 0.0
        self._dirty = True

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Persistent fields as a JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True, include=set(_RECORD_FIELDS))

    def serialize(self) -> bytes:
        return json.dumps(self.to_record(), indent=2).encode("utf-8")

    def __str__(self) -> str:
        return f"{meters_to_nautical_miles(self.total_distance):.2f}NM since {self.started_at.isoformat()}"
