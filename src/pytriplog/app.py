"""High-level wiring of storage, controller and MQTT runtime."""

from __future__ import annotations

import logging
import threading
from typing import Any

from pytriplog._mqtt import TripLogMqttRuntime
from pytriplog.config import TripLogConfig
from pytriplog.controller import TripController
from pytriplog.ingestion.delta import DeltaDispatcher
from pytriplog.rotation.manager import BatchResult
from pytriplog.storage.backend import FileStorageBackend
from pytriplog.storage.store import AccumulatorStore
from pytriplog.telemetry.sink import TelemetrySink

_logger = logging.getLogger(__name__)


class TripLogger:
    """Trip logger service.

    Usage::

        with TripLogger(TripLogConfig.from_env()) as triplog:
            triplog.dispatch(delta)

    With ``mqtt_host`` configured, samples arrive over MQTT and telemetry is
    published back to the broker; otherwise :meth:`dispatch` is the only way
    in and telemetry goes to *sink*.
    """

    def __init__(self, config: TripLogConfig, *, sink: TelemetrySink | None = None) -> None:
        self._config = config
        self._store = AccumulatorStore(FileStorageBackend(config.storage_dir))
        self._runtime: TripLogMqttRuntime | None = None
        if config.mqtt_host:
            self._runtime = TripLogMqttRuntime(config, on_delta=self.dispatch)
            sink = sink or self._runtime
        self._controller = TripController(config, self._store, sink=sink)
        self._dispatcher = DeltaDispatcher(self._controller, min_interval_ms=config.sample_interval_ms)
        # Serializes samples from the MQTT thread and direct dispatch() callers.
        self._lock = threading.Lock()

    def __enter__(self) -> TripLogger:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    @property
    def controller(self) -> TripController:
        return self._controller

    def start(self) -> BatchResult:
        with self._lock:
            result = self._controller.start()
        if self._runtime is not None:
            self._runtime.start()
        _logger.info("Trip logger started, open periods: %s", ", ".join(self._controller.rotation.identities))
        return result

    def stop(self) -> BatchResult:
        if self._runtime is not None:
            self._runtime.stop()
        with self._lock:
            result = self._controller.stop()
        if not result.ok:
            _logger.warning("Unsaved accumulators at shutdown: %s", ", ".join(result.failed_identities))
        return result

    def dispatch(self, delta: dict[str, Any]) -> BatchResult:
        with self._lock:
            return self._dispatcher.dispatch(delta)
