"""Incoming sample models.

Numeric fields are ``None`` when the value is absent or unparseable, so a
noisy sensor yields an invalid sample rather than a validation error.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pytriplog.ingestion.normalize import is_finite, parse_timestamp, safe_float, safe_str


def _utcnow() -> datetime:
    return datetime.now(UTC)


class _Sample(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        parsed = parse_timestamp(value)
        return parsed if parsed is not None else _utcnow()


class PositionSample(_Sample):
    """A position fix.

    Parameters
    ----------
    latitude : float or None
        Latitude in degrees.
    longitude : float or None
        Longitude in degrees.
    timestamp : datetime
        When the fix was taken.
    """

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lon", "lng"))

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @property
    def is_valid(self) -> bool:
        lat, lon = self.latitude, self.longitude
        if lat is None or lon is None or not (is_finite(lat) and is_finite(lon)):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


class SpeedSample(_Sample):
    """Speed through water in meters per second."""

    speed: float | None = None

    @field_validator("speed", mode="before")
    @classmethod
    def _coerce_speed(cls, value: Any) -> float | None:
        return safe_float(value)

    @property
    def is_valid(self) -> bool:
        return is_finite(self.speed) and self.speed is not None and self.speed >= 0


class StateSample(_Sample):
    """An operating-state change, e.g. ``"sailing"`` or ``"anchored"``."""

    state: str | None = None

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, value: Any) -> str | None:
        return safe_str(value)

    @property
    def is_valid(self) -> bool:
        return self.state is not None
