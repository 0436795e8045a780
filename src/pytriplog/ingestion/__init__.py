"""Ingestion layer.

This package contains adapters that receive samples from a telemetry feed
(Signal K style deltas, MQTT) and hand them to the trip controller.
"""

__all__: list[str] = []
