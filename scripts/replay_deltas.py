#!/usr/bin/env python3
"""Replay recorded Signal K deltas into a trip log directory.

Each line of the input is one JSON delta document.  The clock is driven by
the delta timestamps (in local time), so day/month/year rotation happens
as it would have live.

Usage
-----
    python scripts/replay_deltas.py recording.jsonl --storage-dir ./triplog
    python scripts/replay_deltas.py recording.jsonl --windows daily,total --verbose
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pytriplog import (  # noqa: E402
    AccumulatorStore,
    FileStorageBackend,
    MemoryTelemetrySink,
    TripController,
    TripLogConfig,
)
from pytriplog.ingestion.replay import ReplayClock, replay_lines  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay Signal K deltas into a trip log.")
    parser.add_argument("input", help="JSON-lines file of deltas")
    parser.add_argument("--storage-dir", default="triplog", help="Directory for accumulator records")
    parser.add_argument("--windows", default=None, help="Comma-separated windows (total,annual,monthly,daily)")
    parser.add_argument("--speed-through-water", action="store_true", help="Integrate speed instead of positions")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    overrides: dict[str, Any] = {"storage_dir": args.storage_dir}
    if args.windows is not None:
        overrides["enabled_windows"] = [w for w in args.windows.split(",") if w.strip()]
    if args.speed_through_water:
        overrides["distance_source"] = "speed_through_water"
    config = TripLogConfig(**overrides)

    clock = ReplayClock()
    sink = MemoryTelemetrySink()
    store = AccumulatorStore(FileStorageBackend(config.storage_dir))
    controller = TripController(config, store, sink=sink, clock=clock)

    with Path(args.input).open(encoding="utf-8") as handle:
        result = replay_lines(handle, controller, clock)

    print(f"Status: {sink.last_status}")
    for accumulator in controller.rotation.accumulators():
        print(f"{accumulator.identity:<12} {accumulator}")
    if result.failures:
        print(f"\n{len(result.failures)} persistence failure(s).", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
