from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

LatLon = Tuple[float, float]


def is_valid_lat_lon(lat: float, lon: float) -> bool:
    return math.isfinite(lat) and math.isfinite(lon) and -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


@dataclass(frozen=True)
class GeoFix:
    latitude: float
    longitude: float
    timestamp_ms: int
    altitude_m: Optional[float] = None
    horizontal_accuracy_m: Optional[float] = None
    heading_deg: Optional[float] = None
    reported_speed_mps: Optional[float] = None

    @property
    def position(self) -> LatLon:
        return (float(self.latitude), float(self.longitude))

    def has_valid_position(self) -> bool:
        return is_valid_lat_lon(self.latitude, self.longitude)


class TripStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RoutePoint:
    latitude: float
    longitude: float
    speed_mps: float
    timestamp_ms: int
    altitude_m: Optional[float] = None
    synthetic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "speed_mps": self.speed_mps,
            "timestamp_ms": self.timestamp_ms,
            "altitude_m": self.altitude_m,
            "synthetic": self.synthetic,
        }


@dataclass(frozen=True)
class TripStats:
    distance_m: float = 0.0
    active_duration_s: int = 0
    average_speed_mps: float = 0.0
    max_speed_mps: float = 0.0
    start_time_ms: int = 0
    end_time_ms: Optional[int] = None


@dataclass(frozen=True)
class Trip:
    id: str
    status: TripStatus
    stats: TripStats
    route: Tuple[RoutePoint, ...]
    created_at_ms: int
    updated_at_ms: int
    paused_duration_ms: int = 0

    def to_dict(self, include_route: bool = True) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "stats": {
                "distance_m": self.stats.distance_m,
                "active_duration_s": self.stats.active_duration_s,
                "average_speed_mps": self.stats.average_speed_mps,
                "max_speed_mps": self.stats.max_speed_mps,
                "start_time_ms": self.stats.start_time_ms,
                "end_time_ms": self.stats.end_time_ms,
            },
            "created_at_ms": self.created_at_ms,
            "updated_at_ms": self.updated_at_ms,
            "paused_duration_ms": self.paused_duration_ms,
            "route_points": len(self.route),
        }
        if include_route:
            out["route"] = [p.to_dict() for p in self.route]
        return out


@dataclass(frozen=True)
class SessionSample:
    trip_id: Optional[str]
    timestamp_ms: int
    latitude: float
    longitude: float
    accuracy_m: Optional[float]
    speed_mps_reported: Optional[float]
    speed_mps_delta: float
    speed_mps_candidate: float
    speed_mps_filtered: float
    rejected_by: Optional[str]
    trip_status: TripStatus
