from __future__ import annotations

import math
from typing import Dict, Tuple

MPS_TO_KMH = 3.6
MPS_TO_MPH = 2.2369362920544
METERS_PER_MILE = 1609.344

SPEED_UNIT_LABELS: Dict[str, str] = {"kmh": "km/h", "mph": "mph", "mps": "m/s"}


def mps_to_kmh(v_mps: float) -> float:
    return float(v_mps) * MPS_TO_KMH


def mps_to_mph(v_mps: float) -> float:
    return float(v_mps) * MPS_TO_MPH


def kmh_to_mps(v_kmh: float) -> float:
    return float(v_kmh) / MPS_TO_KMH


def _factor(unit: str) -> float:
    u = str(unit).lower()
    if u == "kmh":
        return MPS_TO_KMH
    if u == "mph":
        return MPS_TO_MPH
    if u == "mps":
        return 1.0
    raise ValueError(f"Unknown speed unit: {unit}")


def convert_speed(v_mps: float, unit: str = "kmh") -> float:
    return float(v_mps) * _factor(unit)


def speed_to_mps(v: float, unit: str = "kmh") -> float:
    return float(v) / _factor(unit)


def format_speed(v_mps: float, unit: str = "kmh", decimals: int = 0) -> str:
    return f"{convert_speed(v_mps, unit):.{int(decimals)}f} {SPEED_UNIT_LABELS[str(unit).lower()]}"


def convert_distance(meters: float, imperial: bool = False) -> Tuple[float, str]:
    if imperial:
        return round(float(meters) / METERS_PER_MILE, 2), "mi"
    return round(float(meters) / 1000.0, 2), "km"


def format_distance(meters: float, imperial: bool = False) -> str:
    if meters < 1000.0:
        return f"{int(round(meters))} m"
    value, unit = convert_distance(meters, imperial)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {unit}"


def format_duration(seconds: float) -> str:
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def pace_min_per_km(v_mps: float, imperial: bool = False) -> float:
    """Minutes per km (or per mile); 0 when not moving."""
    if v_mps <= 0.0 or not math.isfinite(v_mps):
        return 0.0
    pace = 60.0 / mps_to_kmh(v_mps)
    if imperial:
        return pace * METERS_PER_MILE / 1000.0
    return pace


def format_pace(v_mps: float, imperial: bool = False) -> str:
    pace = pace_min_per_km(v_mps, imperial)
    minutes = int(math.floor(pace))
    seconds = int(math.floor((pace - minutes) * 60.0))
    return f"{minutes}:{seconds:02d} /{'mi' if imperial else 'km'}"
