from .haversine import EARTH_RADIUS_M, distance_between_m, haversine_m, interpolate_segment, interpolation_fractions, offset_m

__all__ = [
    "EARTH_RADIUS_M",
    "distance_between_m",
    "haversine_m",
    "interpolate_segment",
    "interpolation_fractions",
    "offset_m",
]
