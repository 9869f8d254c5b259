from __future__ import annotations

import math
from typing import List, Optional, Tuple

import numpy as np

from tripspeed.utils.types import LatLon

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon points (degrees)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # Rounding can push a slightly outside [0, 1] near antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return float(EARTH_RADIUS_M * c)


def distance_between_m(p0: LatLon, p1: LatLon) -> float:
    return haversine_m(p0[0], p0[1], p1[0], p1[1])


def offset_m(p: LatLon, north_m: float = 0.0, east_m: float = 0.0) -> LatLon:
    """Move a point by a local north/east displacement on the sphere."""
    lat, lon = float(p[0]), float(p[1])
    d_lat = math.degrees(float(north_m) / EARTH_RADIUS_M)
    cos_lat = math.cos(math.radians(lat))
    if abs(cos_lat) < 1e-12:
        return (lat + d_lat, lon)
    d_lon = math.degrees(float(east_m) / (EARTH_RADIUS_M * cos_lat))
    return (lat + d_lat, lon + d_lon)


def interpolation_fractions(distance_m: float, spacing_m: float, max_points: int) -> np.ndarray:
    """Fractions in (0, 1) at which to place intermediate points along a segment.

    One point per ``spacing_m`` of travel, endpoints excluded, at most
    ``max_points``. Returns an empty array when the segment is too short.
    """
    if spacing_m <= 0.0 or max_points <= 0 or not math.isfinite(distance_m):
        return np.empty(0, dtype=np.float64)
    n = min(int(max_points), int(distance_m // spacing_m) - 1)
    if n <= 0:
        return np.empty(0, dtype=np.float64)
    return np.linspace(0.0, 1.0, n + 2, dtype=np.float64)[1:-1]


def interpolate_segment(
    p0: LatLon,
    t0_ms: int,
    p1: LatLon,
    t1_ms: int,
    fractions: np.ndarray,
) -> List[Tuple[float, float, int]]:
    """Linear lat/lon/time interpolation at the given fractions."""
    if fractions.size == 0:
        return []
    lats = p0[0] + fractions * (p1[0] - p0[0])
    lons = p0[1] + fractions * (p1[1] - p0[1])
    ts = np.floor(t0_ms + fractions * (t1_ms - t0_ms)).astype(np.int64)
    return [(float(a), float(b), int(t)) for a, b, t in zip(lats, lons, ts)]


def lerp_optional(a: Optional[float], b: Optional[float], fractions: np.ndarray) -> List[Optional[float]]:
    if a is None or b is None:
        return [None] * int(fractions.size)
    return [float(v) for v in (a + fractions * (b - a))]
