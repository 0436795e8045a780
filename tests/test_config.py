from __future__ import annotations

import pytest

from pytriplog.config import DistanceSource, TripLogConfig
from pytriplog.exceptions import TripLogConfigError
from pytriplog.rotation.periods import PeriodWindow


def test_defaults() -> None:
    config = TripLogConfig()

    assert config.enabled_windows == frozenset(PeriodWindow)
    assert config.distance_source is DistanceSource.POSITION
    assert config.sample_interval_ms == 10_000
    assert config.moving_states == {"sailing", "motoring"}
    assert config.mqtt_host is None


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("TRIPLOG_STORAGE_DIR", "/var/lib/triplog")
    monkeypatch.setenv("TRIPLOG_WINDOWS", "daily, Total")
    monkeypatch.setenv("TRIPLOG_DISTANCE_SOURCE", "speed_through_water")
    monkeypatch.setenv("TRIPLOG_SAMPLE_INTERVAL_MS", "2000")
    monkeypatch.setenv("TRIPLOG_MOVING_STATES", "sailing,motoring,rowing")
    monkeypatch.setenv("TRIPLOG_MQTT_PORT", "8883")

    config = TripLogConfig.from_env()

    assert config.storage_dir == "/var/lib/triplog"
    assert config.enabled_windows == {PeriodWindow.DAILY, PeriodWindow.TOTAL}
    assert config.distance_source is DistanceSource.SPEED_THROUGH_WATER
    assert config.sample_interval_ms == 2000
    assert "rowing" in config.moving_states
    assert config.mqtt_port == 8883


def test_overrides_win_over_env(monkeypatch) -> None:
    monkeypatch.setenv("TRIPLOG_STORAGE_DIR", "/from/env")
    config = TripLogConfig.from_env(storage_dir="/explicit")
    assert config.storage_dir == "/explicit"


def test_empty_windows_env_disables_optional_windows(monkeypatch) -> None:
    monkeypatch.setenv("TRIPLOG_WINDOWS", "")
    assert TripLogConfig.from_env().enabled_windows == frozenset()


@pytest.mark.parametrize(
    ("env_key", "value"),
    [
        ("TRIPLOG_WINDOWS", "weekly"),
        ("TRIPLOG_DISTANCE_SOURCE", "log_impeller"),
        ("TRIPLOG_SAMPLE_INTERVAL_MS", "often"),
        ("TRIPLOG_SAMPLE_INTERVAL_MS", "0"),
        ("TRIPLOG_MOVING_STATES", ","),
    ],
)
def test_invalid_env_values(monkeypatch, env_key: str, value: str) -> None:
    monkeypatch.setenv(env_key, value)
    with pytest.raises(TripLogConfigError):
        TripLogConfig.from_env()
