"""Trip logger configuration."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from pytriplog._constants import DEFAULT_MOVING_STATES, DEFAULT_SAMPLE_INTERVAL_MS
from pytriplog.exceptions import TripLogConfigError
from pytriplog.rotation.periods import PeriodWindow


class DistanceSource(StrEnum):
    POSITION = "position"
    SPEED_THROUGH_WATER = "speed_through_water"


def _env_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_windows(values: Iterable[str | PeriodWindow]) -> frozenset[PeriodWindow]:
    try:
        return frozenset(PeriodWindow(str(value).strip().lower()) for value in values)
    except ValueError as exc:
        raise TripLogConfigError(f"Unknown period window: {exc}") from exc


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise TripLogConfigError(f"{name} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class TripLogConfig:
    """Trip logger configuration.

    Parameters
    ----------
    storage_dir : str
        Directory holding one JSON record per accumulator identity.
    enabled_windows : frozenset of PeriodWindow
        Optional accumulators kept open besides ``"current"``.
    distance_source : DistanceSource
        Where distance comes from: position deltas (default) or speed
        through water integrated over the sample interval.  Chosen once.
    sample_interval_ms : int
        Requested interval between position/speed samples.
    moving_states : frozenset of str
        Operating states that count as under way.
    mqtt_host : str or None
        MQTT broker host.  ``None`` disables MQTT.
    mqtt_port : int
        MQTT broker port.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_topic_prefix : str
        Topic prefix for incoming samples and outgoing telemetry.
    mqtt_client_id : str
        MQTT client identifier.
    """

    storage_dir: str = "triplog"
    enabled_windows: frozenset[PeriodWindow] = frozenset(PeriodWindow)
    distance_source: DistanceSource = DistanceSource.POSITION
    sample_interval_ms: int = DEFAULT_SAMPLE_INTERVAL_MS
    moving_states: frozenset[str] = DEFAULT_MOVING_STATES
    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_keepalive: int = 60
    mqtt_topic_prefix: str = "vessels/self"
    mqtt_client_id: str = "pytriplog"

    def __post_init__(self) -> None:
        object.__setattr__(self, "enabled_windows", _parse_windows(self.enabled_windows))
        try:
            object.__setattr__(self, "distance_source", DistanceSource(self.distance_source))
        except ValueError as exc:
            raise TripLogConfigError(f"Unknown distance source: {self.distance_source!r}") from exc
        object.__setattr__(self, "moving_states", frozenset(self.moving_states))
        if self.sample_interval_ms <= 0:
            raise TripLogConfigError("sample_interval_ms must be positive")
        if not self.moving_states:
            raise TripLogConfigError("moving_states must not be empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> TripLogConfig:
        """Create configuration from ``TRIPLOG_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        for env_key, field_name in {
            "TRIPLOG_STORAGE_DIR": "storage_dir",
            "TRIPLOG_DISTANCE_SOURCE": "distance_source",
            "TRIPLOG_MQTT_HOST": "mqtt_host",
            "TRIPLOG_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
            "TRIPLOG_MQTT_CLIENT_ID": "mqtt_client_id",
        }.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in {
            "TRIPLOG_SAMPLE_INTERVAL_MS": "sample_interval_ms",
            "TRIPLOG_MQTT_PORT": "mqtt_port",
            "TRIPLOG_MQTT_KEEPALIVE": "mqtt_keepalive",
        }.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = _parse_int(env_key, val)

        windows_env = env.get("TRIPLOG_WINDOWS")
        if windows_env is not None:
            config_kwargs["enabled_windows"] = _parse_windows(_env_list(windows_env))

        moving_env = env.get("TRIPLOG_MOVING_STATES")
        if moving_env is not None:
            config_kwargs["moving_states"] = frozenset(_env_list(moving_env))

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
