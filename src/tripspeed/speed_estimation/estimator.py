from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from tripspeed.geo.haversine import haversine_m
from tripspeed.utils.types import GeoFix


logger = logging.getLogger("tripspeed.speed_estimation.estimator")


@dataclass(frozen=True)
class EstimatorState:
    latitude: float
    longitude: float
    timestamp_ms: int


class RawSpeedEstimator:
    """
    Distance-over-time (dd/dt) speed from consecutive fixes of one session.

    The previous fix lives on the instance; create one estimator per tracking
    session and call ``reset()`` whenever that session restarts.
    """

    def __init__(self) -> None:
        self._prev: Optional[EstimatorState] = None

    @property
    def state(self) -> Optional[EstimatorState]:
        return self._prev

    def estimate(self, fix: GeoFix) -> float:
        v = self.estimate_or_none(fix)
        return 0.0 if v is None else v

    def estimate_or_none(self, fix: GeoFix) -> Optional[float]:
        """Like ``estimate`` but ``None`` when there is no usable baseline."""
        if not fix.has_valid_position():
            logger.debug("Ignoring fix with invalid position t=%s", fix.timestamp_ms)
            return None
        if self._prev is None:
            self._prev = EstimatorState(float(fix.latitude), float(fix.longitude), int(fix.timestamp_ms))
            return None

        elapsed_s = (int(fix.timestamp_ms) - self._prev.timestamp_ms) / 1000.0
        if elapsed_s <= 0.0:
            logger.debug("Non-positive elapsed time %.3fs, skipping dd/dt", elapsed_s)
            return None

        dist = haversine_m(self._prev.latitude, self._prev.longitude, fix.latitude, fix.longitude)
        self._prev = EstimatorState(float(fix.latitude), float(fix.longitude), int(fix.timestamp_ms))
        return float(dist / elapsed_s)

    def reset(self) -> None:
        self._prev = None
