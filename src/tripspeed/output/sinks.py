from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from tripspeed.utils.types import SessionSample


FIELDNAMES = [
    "trip_id",
    "timestamp_ms",
    "latitude",
    "longitude",
    "accuracy_m",
    "speed_mps_reported",
    "speed_mps_delta",
    "speed_mps_candidate",
    "speed_mps_filtered",
    "rejected_by",
    "trip_status",
]


def _ensure_parent(path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def sample_to_row(s: SessionSample) -> Dict[str, Any]:
    return {
        "trip_id": s.trip_id,
        "timestamp_ms": s.timestamp_ms,
        "latitude": s.latitude,
        "longitude": s.longitude,
        "accuracy_m": s.accuracy_m,
        "speed_mps_reported": s.speed_mps_reported,
        "speed_mps_delta": s.speed_mps_delta,
        "speed_mps_candidate": s.speed_mps_candidate,
        "speed_mps_filtered": s.speed_mps_filtered,
        "rejected_by": s.rejected_by,
        "trip_status": s.trip_status.value,
    }


@dataclass
class CsvSink:
    path: str
    _f: Optional[Any] = None
    _w: Optional[csv.DictWriter] = None

    def open(self) -> None:
        _ensure_parent(self.path)
        self._f = open(self.path, "w", newline="", encoding="utf-8")
        self._w = csv.DictWriter(self._f, fieldnames=FIELDNAMES)
        self._w.writeheader()

    def write(self, s: SessionSample) -> None:
        if self._w is None:
            raise RuntimeError("CsvSink not opened")
        row = sample_to_row(s)
        self._w.writerow({k: ("" if v is None else v) for k, v in row.items()})

    def close(self) -> None:
        if self._f is not None:
            self._f.close()
        self._f = None
        self._w = None


@dataclass
class JsonlSink:
    path: str
    _f: Optional[Any] = None

    def open(self) -> None:
        _ensure_parent(self.path)
        self._f = open(self.path, "w", encoding="utf-8")

    def write(self, s: SessionSample) -> None:
        if self._f is None:
            raise RuntimeError("JsonlSink not opened")
        self._f.write(json.dumps(sample_to_row(s), ensure_ascii=False) + "\n")

    def close(self) -> None:
        if self._f is not None:
            self._f.close()
        self._f = None


@dataclass
class SampleSinks:
    csv: Optional[CsvSink] = None
    jsonl: Optional[JsonlSink] = None

    def open(self) -> None:
        if self.csv is not None:
            self.csv.open()
        if self.jsonl is not None:
            self.jsonl.open()

    def write(self, s: SessionSample) -> None:
        if self.csv is not None:
            self.csv.write(s)
        if self.jsonl is not None:
            self.jsonl.write(s)

    def close(self) -> None:
        if self.csv is not None:
            self.csv.close()
        if self.jsonl is not None:
            self.jsonl.close()
