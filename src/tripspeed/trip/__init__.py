from .accumulator import TripAccumulator, TripAccumulatorConfig, wall_clock_ms

__all__ = ["TripAccumulator", "TripAccumulatorConfig", "wall_clock_ms"]
