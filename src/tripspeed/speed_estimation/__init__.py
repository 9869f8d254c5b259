from .estimator import RawSpeedEstimator
from .filter import FilterState, SpeedFilter, SpeedFilterConfig, check_gates, filter_step
from .units import convert_speed, mps_to_kmh, mps_to_mph

__all__ = [
    "FilterState",
    "RawSpeedEstimator",
    "SpeedFilter",
    "SpeedFilterConfig",
    "check_gates",
    "convert_speed",
    "filter_step",
    "mps_to_kmh",
    "mps_to_mph",
]
