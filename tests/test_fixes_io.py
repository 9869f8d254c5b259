import csv
import json
from pathlib import Path

import pytest

from tripspeed.io.fixes import ReplayClock, ReplayLocationProvider, load_fixes_csv
from tripspeed.output.sinks import FIELDNAMES, CsvSink, JsonlSink, SampleSinks
from tripspeed.output.trip_store import InMemoryTripStore
from tripspeed.utils.config import load_yaml, section
from tripspeed.utils.types import SessionSample, Trip, TripStats, TripStatus

from track_fixtures import straight_track


def _trip(i: int) -> Trip:
    return Trip(
        id=f"trip_{i}",
        status=TripStatus.STOPPED,
        stats=TripStats(start_time_ms=i),
        route=(),
        created_at_ms=i,
        updated_at_ms=i,
    )


def _sample(t_ms: int) -> SessionSample:
    return SessionSample(
        trip_id="trip_0",
        timestamp_ms=t_ms,
        latitude=10.0,
        longitude=106.0,
        accuracy_m=None,
        speed_mps_reported=None,
        speed_mps_delta=2.0,
        speed_mps_candidate=2.0,
        speed_mps_filtered=1.6,
        rejected_by=None,
        trip_status=TripStatus.RUNNING,
    )


def test_load_fixes_csv_skips_incomplete_rows(tmp_path: Path) -> None:
    p = tmp_path / "fixes.csv"
    p.write_text(
        "timestamp_ms,latitude,longitude,horizontal_accuracy_m,reported_speed_mps\n"
        "0,10.0,106.0,5,\n"
        "1000,,106.0,5,3.0\n"
        "2000,10.0001,106.0,nan,3.5\n"
        "3000,abc,106.0,5,3.0\n",
        encoding="utf-8",
    )
    fixes = load_fixes_csv(str(p))
    assert [f.timestamp_ms for f in fixes] == [0, 2000]
    assert fixes[0].reported_speed_mps is None
    assert fixes[0].horizontal_accuracy_m == 5.0
    assert fixes[1].horizontal_accuracy_m is None
    assert fixes[1].reported_speed_mps == 3.5


def test_replay_provider_advances_clock_and_unsubscribes() -> None:
    fixes = straight_track(5.0, 4, t0_ms=10_000)
    clock = ReplayClock()
    provider = ReplayLocationProvider(fixes, clock=clock)
    seen = []
    sub = provider.subscribe(lambda f: seen.append((f.timestamp_ms, clock())))
    assert provider.subscriber_count == 1
    assert provider.play() == 4
    assert seen == [(10_000, 10_000), (11_000, 11_000), (12_000, 12_000), (13_000, 13_000)]

    sub.remove()
    sub.remove()
    assert provider.subscriber_count == 0
    assert provider.play() == 0


def test_sample_sinks_write_csv_and_jsonl(tmp_path: Path) -> None:
    csv_path = tmp_path / "out" / "samples.csv"
    jsonl_path = tmp_path / "out" / "samples.jsonl"
    sinks = SampleSinks(csv=CsvSink(str(csv_path)), jsonl=JsonlSink(str(jsonl_path)))
    sinks.open()
    sinks.write(_sample(0))
    sinks.write(_sample(1000))
    sinks.close()

    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert list(rows[0].keys()) == FIELDNAMES
    assert rows[1]["timestamp_ms"] == "1000"
    assert rows[0]["accuracy_m"] == ""
    assert rows[0]["trip_status"] == "running"

    lines = jsonl_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    rec = json.loads(lines[0])
    assert rec["accuracy_m"] is None
    assert rec["speed_mps_filtered"] == 1.6


def test_sink_requires_open(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        CsvSink(str(tmp_path / "x.csv")).write(_sample(0))


def test_trip_store_is_bounded_newest_first() -> None:
    store = InMemoryTripStore(max_items=3)
    for i in range(5):
        store.save(_trip(i))
    assert len(store) == 3
    assert [t.id for t in store.history()] == ["trip_4", "trip_3", "trip_2"]
    assert store.get("trip_1") is None
    assert store.delete("trip_3") is True
    assert store.delete("trip_3") is False
    assert [t.id for t in store.history()] == ["trip_4", "trip_2"]
    store.clear()
    assert len(store) == 0


def test_load_yaml_and_section(tmp_path: Path) -> None:
    p = tmp_path / "session.yaml"
    p.write_text("speed_source: delta\ntrip:\n  min_segment_m: 2.5\n", encoding="utf-8")
    cfg = load_yaml(str(p))
    assert cfg["speed_source"] == "delta"
    assert section(cfg, "trip") == {"min_segment_m": 2.5}
    assert section(cfg, "alerts") == {}

    bad = tmp_path / "bad.yaml"
    bad.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml(str(bad))
