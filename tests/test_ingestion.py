from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from pytriplog._mqtt import TripLogMqttRuntime, path_for_topic, topic_for_path
from pytriplog.config import DistanceSource, TripLogConfig
from pytriplog.controller import TripController, TripPhase
from pytriplog.ingestion.delta import DeltaDispatcher, dispatch_delta
from pytriplog.ingestion.normalize import parse_timestamp, safe_float
from pytriplog.models.samples import PositionSample, SpeedSample, StateSample
from pytriplog.rotation.manager import BatchResult
from pytriplog.telemetry.sink import TelemetryUpdate


def _delta(path: str, value, timestamp: str | None = None) -> dict:
    update: dict = {"values": [{"path": path, "value": value}]}
    if timestamp is not None:
        update["timestamp"] = timestamp
    return {"updates": [update]}


class _RecordingController:
    def __init__(self) -> None:
        self.samples: list = []

    def handle_state(self, sample: StateSample):
        self.samples.append(sample)
        return BatchResult()

    handle_position = handle_state
    handle_speed = handle_state


class TestNormalize:
    @pytest.mark.parametrize("value", [None, "", "--", "abc", float("nan"), [], True])
    def test_safe_float_rejects(self, value) -> None:
        assert safe_float(value) is None

    def test_safe_float_accepts_numeric_strings(self) -> None:
        assert safe_float("12.5") == 12.5

    def test_parse_timestamp_variants(self) -> None:
        expected = datetime(2024, 3, 17, 8, tzinfo=UTC)
        assert parse_timestamp("2024-03-17T08:00:00Z") == expected
        assert parse_timestamp("2024-03-17T08:00:00") == expected
        assert parse_timestamp(expected.timestamp()) == expected
        assert parse_timestamp(expected.timestamp() * 1000) == expected
        assert parse_timestamp("soon") is None
        assert parse_timestamp(-5) is None


class TestSamples:
    def test_position_aliases(self) -> None:
        sample = PositionSample.model_validate({"lat": "60.1", "lon": 24.9})
        assert sample.latitude == 60.1
        assert sample.longitude == 24.9
        assert sample.is_valid

    def test_state_whitespace(self) -> None:
        assert StateSample(state="  ").is_valid is False
        assert StateSample(state=" sailing ").state == "sailing"

    def test_timestamp_defaults_to_now(self) -> None:
        assert SpeedSample(speed=1.0, timestamp=None).timestamp.tzinfo is not None


class TestDeltaDispatcher:
    def test_routes_paths_in_order(self) -> None:
        controller = _RecordingController()
        delta = {
            "updates": [
                {
                    "timestamp": "2024-03-17T08:00:00Z",
                    "values": [
                        {"path": "navigation.state", "value": "sailing"},
                        {"path": "navigation.position", "value": {"latitude": 60.0, "longitude": 25.0}},
                        {"path": "navigation.speedThroughWater", "value": 2.5},
                        {"path": "environment.wind.speedApparent", "value": 7.0},
                    ],
                }
            ]
        }

        dispatch_delta(controller, delta)  # type: ignore[arg-type]

        kinds = [type(sample) for sample in controller.samples]
        assert kinds == [StateSample, PositionSample, SpeedSample]
        assert all(s.timestamp == datetime(2024, 3, 17, 8, tzinfo=UTC) for s in controller.samples)

    @pytest.mark.parametrize(
        "delta",
        [
            None,
            [],
            {},
            {"updates": None},
            {"updates": ["x"]},
            {"updates": [{"values": "x"}]},
            {"updates": [{"values": [1]}]},
        ],
    )
    def test_malformed_deltas_ignored(self, delta) -> None:
        controller = _RecordingController()
        assert dispatch_delta(controller, delta).ok  # type: ignore[arg-type]
        assert controller.samples == []

    def test_non_object_position_ignored(self) -> None:
        controller = _RecordingController()
        dispatch_delta(controller, _delta("navigation.position", "60N 25E"))  # type: ignore[arg-type]
        assert controller.samples == []

    def test_throttles_position_by_interval(self) -> None:
        controller = _RecordingController()
        dispatcher = DeltaDispatcher(controller, min_interval_ms=10_000)  # type: ignore[arg-type]
        position = {"latitude": 60.0, "longitude": 25.0}

        dispatcher.dispatch(_delta("navigation.position", position, "2024-03-17T08:00:00Z"))
        dispatcher.dispatch(_delta("navigation.position", position, "2024-03-17T08:00:05Z"))
        dispatcher.dispatch(_delta("navigation.position", position, "2024-03-17T08:00:10Z"))
        dispatcher.dispatch(_delta("navigation.state", "sailing", "2024-03-17T08:00:11Z"))

        assert len(controller.samples) == 3
        assert isinstance(controller.samples[-1], StateSample)

    def test_invalid_fix_does_not_consume_interval(self) -> None:
        controller = _RecordingController()
        dispatcher = DeltaDispatcher(controller, min_interval_ms=10_000)  # type: ignore[arg-type]

        broken = {"latitude": "NaN", "longitude": 25.0}
        position = {"latitude": 60.0, "longitude": 25.0}

        dispatcher.dispatch(_delta("navigation.position", broken, "2024-03-17T08:00:00Z"))
        dispatcher.dispatch(_delta("navigation.position", position, "2024-03-17T08:00:05Z"))
        dispatcher.dispatch(_delta("navigation.position", position, "2024-03-17T08:00:07Z"))

        assert [sample.is_valid for sample in controller.samples] == [False, True]

    def test_end_to_end_with_controller(self, store, clock) -> None:
        controller = TripController(TripLogConfig(), store, clock=clock)
        controller.start()

        dispatch_delta(controller, _delta("navigation.state", "sailing"))
        dispatch_delta(controller, _delta("navigation.position", {"latitude": 60.0, "longitude": 25.0}))
        dispatch_delta(controller, _delta("navigation.position", {"latitude": 60.0 + 1 / 60, "longitude": 25.0}))

        assert controller.phase is TripPhase.MOVING
        assert controller.rotation.current.total_distance == pytest.approx(1853.2, abs=0.5)


class _FakeMqttClient:
    def __init__(self) -> None:
        self.published: list[tuple[str, str, bool]] = []

    def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        self.published.append((topic, payload, retain))


class TestMqttRuntime:
    def test_topic_mapping(self) -> None:
        assert topic_for_path("vessels/self/", "navigation.trip.log") == "vessels/self/navigation/trip/log"
        assert path_for_topic("vessels/self", "vessels/self/navigation/position") == "navigation.position"
        assert path_for_topic("vessels/self", "other/navigation/position") is None

    def test_publish_values_and_status(self) -> None:
        runtime = TripLogMqttRuntime(TripLogConfig(mqtt_host="localhost"))
        client = _FakeMqttClient()
        runtime._client = client  # type: ignore[assignment]  # noqa: SLF001
        now = datetime(2024, 3, 17, 8, tzinfo=UTC)

        runtime.publish(TelemetryUpdate(timestamp=now, values={"navigation.trip.log": 12.0}, status="Trip under way"))

        topic, payload, retain = client.published[0]
        assert topic == "vessels/self/navigation/trip/log"
        assert json.loads(payload) == {"value": 12.0, "timestamp": now.isoformat()}
        assert retain is True
        assert client.published[1][:2] == ("vessels/self/plugins/triplog/status", "Trip under way")

    def test_publish_dropped_when_not_running(self) -> None:
        runtime = TripLogMqttRuntime(TripLogConfig(mqtt_host="localhost"))
        runtime.publish(TelemetryUpdate(timestamp=datetime.now(UTC), values={"a": 1}))
        assert runtime.is_running is False

    def test_handle_message_builds_delta(self) -> None:
        received: list[dict] = []
        runtime = TripLogMqttRuntime(TripLogConfig(mqtt_host="localhost"), on_delta=received.append)

        runtime.handle_message("vessels/self/navigation/state", b'"sailing"')
        runtime.handle_message(
            "vessels/self/navigation/speedThroughWater",
            b'{"value": 2.0, "timestamp": "2024-03-17T08:00:00Z"}',
        )
        runtime.handle_message("vessels/self/navigation/position", b"not json")
        runtime.handle_message("vessels/self/navigation/state", json.dumps(_delta("navigation.state", "x")).encode())

        assert received[0] == _delta("navigation.state", "sailing")
        assert received[1] == _delta("navigation.speedThroughWater", 2.0, "2024-03-17T08:00:00Z")
        assert received[2] == _delta("navigation.state", "x")
        assert len(received) == 3

    def test_handler_errors_are_contained(self) -> None:
        def _boom(_delta: dict) -> None:
            raise RuntimeError("boom")

        runtime = TripLogMqttRuntime(TripLogConfig(mqtt_host="localhost"), on_delta=_boom)
        runtime.handle_message("vessels/self/navigation/state", b'"sailing"')

    def test_start_requires_host(self) -> None:
        runtime = TripLogMqttRuntime(TripLogConfig())
        with pytest.raises(ValueError):
            runtime.start()


def test_speed_source_via_delta(store, clock) -> None:
    controller = TripController(TripLogConfig(distance_source=DistanceSource.SPEED_THROUGH_WATER), store, clock=clock)
    controller.start()
    dispatch_delta(controller, _delta("navigation.state", "motoring"))
    dispatch_delta(controller, _delta("navigation.speedThroughWater", 4.0, "2024-03-17T08:00:00Z"))
    dispatch_delta(controller, _delta("navigation.speedThroughWater", 4.0, "2024-03-17T08:01:00Z"))

    assert controller.rotation.current.total_distance == pytest.approx(240.0)
