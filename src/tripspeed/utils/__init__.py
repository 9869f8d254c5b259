from .config import load_yaml, resolve_path
from .logging import setup_logging
from .types import GeoFix, LatLon, RoutePoint, SessionSample, Trip, TripStats, TripStatus

__all__ = [
    "GeoFix",
    "LatLon",
    "RoutePoint",
    "SessionSample",
    "Trip",
    "TripStats",
    "TripStatus",
    "load_yaml",
    "resolve_path",
    "setup_logging",
]
