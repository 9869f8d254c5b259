from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tripspeed.io.fixes import ReplayClock, ReplayLocationProvider, load_fixes_csv
from tripspeed.output.sinks import CsvSink, JsonlSink, SampleSinks
from tripspeed.output.trip_store import InMemoryTripStore
from tripspeed.pipeline.session import SessionConfig, TrackingSession
from tripspeed.speed_estimation.units import format_distance, format_duration, format_speed
from tripspeed.utils.config import load_yaml, resolve_path
from tripspeed.utils.logging import setup_logging


logger = logging.getLogger("tripspeed.scripts.replay")


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay a recorded GPS fix CSV through a tracking session")
    ap.add_argument("--fixes", required=True, help="CSV with latitude,longitude,timestamp_ms[,horizontal_accuracy_m,reported_speed_mps,...]")
    ap.add_argument("--config", default=None, help="Session YAML (defaults are used when omitted)")
    ap.add_argument("--csv-out", default=None, help="Write per-fix samples as CSV")
    ap.add_argument("--jsonl-out", default=None, help="Write per-fix samples as JSONL")
    ap.add_argument("--units", default="kmh", choices=["kmh", "mph", "mps"])
    ap.add_argument("--include-route", action="store_true", help="Include the route in the JSON summary")
    ap.add_argument("--log-level", default="INFO")
    ap.add_argument("--log-file", default=None)
    args = ap.parse_args()

    base_dir = os.getcwd()
    setup_logging(level=args.log_level, log_file=args.log_file)

    cfg = SessionConfig.from_dict(load_yaml(resolve_path(args.config, base_dir))) if args.config else SessionConfig()
    fixes = load_fixes_csv(resolve_path(args.fixes, base_dir))
    if not fixes:
        raise RuntimeError(f"No usable fixes in: {args.fixes}")

    sinks = SampleSinks(
        csv=CsvSink(resolve_path(args.csv_out, base_dir)) if args.csv_out else None,
        jsonl=JsonlSink(resolve_path(args.jsonl_out, base_dir)) if args.jsonl_out else None,
    )
    clock = ReplayClock(start_ms=fixes[0].timestamp_ms)
    provider = ReplayLocationProvider(fixes, clock=clock)
    store = InMemoryTripStore()
    session = TrackingSession(cfg, clock=clock, store=store, on_sample=sinks.write)

    sinks.open()
    try:
        session.start(provider)
        delivered = provider.play()
        trip = session.stop()
    finally:
        sinks.close()

    if trip is None:
        raise RuntimeError("Session produced no trip")
    logger.info(
        "Replayed %d fixes: distance=%s duration=%s avg=%s max=%s",
        delivered,
        format_distance(trip.stats.distance_m),
        format_duration(trip.stats.active_duration_s),
        format_speed(trip.stats.average_speed_mps, args.units, 1),
        format_speed(trip.stats.max_speed_mps, args.units, 1),
    )
    print(json.dumps(trip.to_dict(include_route=args.include_route), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
