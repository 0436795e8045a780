"""Internal MQTT runtime: publishes telemetry and receives samples."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pytriplog.config import TripLogConfig
from pytriplog.telemetry.sink import TelemetryUpdate

STATUS_TOPIC_SUFFIX = "plugins/triplog/status"


def topic_for_path(prefix: str, path: str) -> str:
    return f"{prefix.rstrip('/')}/{path.replace('.', '/')}"


def path_for_topic(prefix: str, topic: str) -> str | None:
    base = prefix.rstrip("/") + "/"
    if not topic.startswith(base):
        return None
    remainder = topic[len(base) :].strip("/")
    return remainder.replace("/", ".") if remainder else None


def _default_client_factory(config: TripLogConfig) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=config.mqtt_client_id,
    )


class TripLogMqttRuntime:
    """Threaded paho-mqtt runtime.

    Incoming messages on ``<prefix>/navigation/#`` are turned into Signal K
    style deltas and passed to *on_delta* on the paho network thread, one at
    a time and in arrival order.  The runtime is also a telemetry sink:
    :meth:`publish` sends every value to its own retained topic.
    """

    def __init__(
        self,
        config: TripLogConfig,
        *,
        on_delta: Callable[[dict[str, Any]], Any] | None = None,
        client_factory: Callable[[TripLogConfig], mqtt.Client] = _default_client_factory,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._on_delta = on_delta
        self._client_factory = client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    @property
    def subscription(self) -> str:
        return f"{self._config.mqtt_topic_prefix.rstrip('/')}/navigation/#"

    def start(self) -> None:
        """Connect to the configured broker and subscribe to samples."""
        self.stop()
        host = self._config.mqtt_host
        if not host:
            raise ValueError("mqtt_host is not configured")
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s",
            host,
            self._config.mqtt_port,
            self.subscription,
        )
        client = self._client_factory(self._config)
        client.enable_logger(self._logger)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected, subscribing topic=%s", self.subscription)
            c.subscribe(self.subscription, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self.handle_message(msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(host, self._config.mqtt_port, keepalive=self._config.mqtt_keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def handle_message(self, topic: str, payload: bytes) -> None:
        """Decode one incoming message and forward it as a delta."""
        if self._on_delta is None:
            return
        try:
            value = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._logger.debug("MQTT payload is not JSON topic=%s", topic)
            return
        if isinstance(value, dict) and "updates" in value:
            delta = value
        else:
            path = path_for_topic(self._config.mqtt_topic_prefix, topic)
            if path is None:
                return
            update: dict[str, Any] = {}
            # Same {"value": ..., "timestamp": ...} envelope that publish() emits.
            if isinstance(value, dict) and "value" in value:
                update["timestamp"] = value.get("timestamp")
                value = value["value"]
            update["values"] = [{"path": path, "value": value}]
            delta = {"updates": [update]}
        try:
            self._on_delta(delta)
        except Exception:
            self._logger.exception("Sample handling failed topic=%s", topic)

    def publish(self, update: TelemetryUpdate) -> None:
        """Publish a telemetry update; dropped when not connected."""
        client = self._client
        if client is None:
            self._logger.debug("MQTT not running, dropping telemetry update")
            return
        prefix = self._config.mqtt_topic_prefix
        for path, value in update.values.items():
            message = {"value": value, "timestamp": update.timestamp.isoformat()}
            client.publish(topic_for_path(prefix, path), json.dumps(message), qos=0, retain=True)
        if update.status is not None:
            client.publish(f"{prefix.rstrip('/')}/{STATUS_TOPIC_SUFFIX}", update.status, qos=0, retain=True)
