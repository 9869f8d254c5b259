from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from tripspeed.geo.haversine import distance_between_m, interpolate_segment, interpolation_fractions, lerp_optional
from tripspeed.output.trip_store import TripStore
from tripspeed.utils.types import GeoFix, RoutePoint, Trip, TripStats, TripStatus


logger = logging.getLogger("tripspeed.trip.accumulator")

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TripAccumulatorConfig:
    min_segment_m: float = 1.0
    interpolation_enabled: bool = True
    interpolation_spacing_m: float = 2.0
    max_interpolated_points: int = 50

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "TripAccumulatorConfig":
        interp = d.get("interpolation", {}) or {}
        return TripAccumulatorConfig(
            min_segment_m=float(d.get("min_segment_m", 1.0)),
            interpolation_enabled=bool(interp.get("enabled", True)),
            interpolation_spacing_m=float(interp.get("spacing_m", 2.0)),
            max_interpolated_points=int(interp.get("max_points", 50)),
        )


@dataclass
class _TripSession:
    id: str
    status: TripStatus
    start_time_ms: int
    created_at_ms: int
    updated_at_ms: int
    end_time_ms: Optional[int] = None
    distance_m: float = 0.0
    active_duration_s: int = 0
    average_speed_mps: float = 0.0
    max_speed_mps: float = 0.0
    route: List[RoutePoint] = field(default_factory=list)
    paused_duration_ms: int = 0
    pause_started_at_ms: Optional[int] = None
    prev_fix: Optional[GeoFix] = None
    prev_speed_mps: float = 0.0

    def snapshot(self) -> Trip:
        return Trip(
            id=self.id,
            status=self.status,
            stats=TripStats(
                distance_m=float(self.distance_m),
                active_duration_s=int(self.active_duration_s),
                average_speed_mps=float(self.average_speed_mps),
                max_speed_mps=float(self.max_speed_mps),
                start_time_ms=int(self.start_time_ms),
                end_time_ms=self.end_time_ms,
            ),
            route=tuple(self.route),
            created_at_ms=int(self.created_at_ms),
            updated_at_ms=int(self.updated_at_ms),
            paused_duration_ms=int(self.paused_duration_ms),
        )


class TripAccumulator:
    """
    Integrates distance, active duration and average/maximum speed for one trip.

    The trip status is the only lifecycle guard: ``update`` does nothing unless
    the trip is running, and ``stop`` only acts on a running or paused trip, so
    a duplicate stop (or one re-entered from the store) is a no-op.
    """

    def __init__(
        self,
        cfg: Optional[TripAccumulatorConfig] = None,
        clock: Optional[Clock] = None,
        store: Optional[TripStore] = None,
    ) -> None:
        self._cfg = cfg or TripAccumulatorConfig()
        self._clock: Clock = clock or wall_clock_ms
        self._store = store
        self._session: Optional[_TripSession] = None

    @property
    def status(self) -> TripStatus:
        if self._session is None:
            return TripStatus.IDLE
        return self._session.status

    @property
    def trip_id(self) -> Optional[str]:
        return self._session.id if self._session is not None else None

    @property
    def trip(self) -> Optional[Trip]:
        if self._session is None:
            return None
        return self._session.snapshot()

    def start(self) -> Trip:
        s = self._session
        if s is not None and s.status in (TripStatus.RUNNING, TripStatus.PAUSED, TripStatus.STOPPING):
            logger.warning("Trip %s already %s, ignoring start", s.id, s.status.value)
            return s.snapshot()
        now = int(self._clock())
        self._session = _TripSession(
            id=f"trip_{now}",
            status=TripStatus.RUNNING,
            start_time_ms=now,
            created_at_ms=now,
            updated_at_ms=now,
        )
        logger.info("Started trip %s", self._session.id)
        return self._session.snapshot()

    def pause(self) -> None:
        s = self._session
        if s is None or s.status is not TripStatus.RUNNING:
            return
        now = int(self._clock())
        s.status = TripStatus.PAUSED
        s.pause_started_at_ms = now
        s.updated_at_ms = now
        logger.info("Paused trip %s", s.id)

    def resume(self) -> None:
        s = self._session
        if s is None or s.status is not TripStatus.PAUSED:
            return
        now = int(self._clock())
        self._close_pause(s, now)
        # Movement while paused is not part of the trip; the next fix starts a new baseline.
        s.prev_fix = None
        s.status = TripStatus.RUNNING
        s.updated_at_ms = now
        logger.info("Resumed trip %s (paused %d ms total)", s.id, s.paused_duration_ms)

    def stop(self) -> Optional[Trip]:
        s = self._session
        if s is None or s.status not in (TripStatus.RUNNING, TripStatus.PAUSED):
            logger.debug("Ignoring stop in state %s", self.status.value)
            return None
        now = int(self._clock())
        s.status = TripStatus.STOPPING
        self._close_pause(s, now)
        s.end_time_ms = now
        self._refresh_totals(s, now)
        s.updated_at_ms = now
        final = replace(s.snapshot(), status=TripStatus.STOPPED)
        if self._store is not None:
            try:
                self._store.save(final)
            except Exception:
                logger.exception("Failed to save trip %s", s.id)
        s.status = TripStatus.STOPPED
        logger.info(
            "Stopped trip %s distance=%.1f m duration=%d s points=%d",
            s.id,
            s.distance_m,
            s.active_duration_s,
            len(s.route),
        )
        return final

    def update(self, fix: GeoFix, filtered_speed_mps: float) -> bool:
        """Feed one fix; returns True when a route point was recorded."""
        s = self._session
        if s is None or s.status is not TripStatus.RUNNING:
            return False
        if not fix.has_valid_position():
            logger.debug("Ignoring fix with invalid position t=%s", fix.timestamp_ms)
            return False
        if s.route and int(fix.timestamp_ms) < s.route[-1].timestamp_ms:
            logger.debug("Ignoring out-of-order fix t=%s < %s", fix.timestamp_ms, s.route[-1].timestamp_ms)
            return False
        prev = s.prev_fix

        speed = float(filtered_speed_mps)
        if not math.isfinite(speed) or speed < 0.0:
            speed = 0.0
        now = int(self._clock())

        point = RoutePoint(
            latitude=float(fix.latitude),
            longitude=float(fix.longitude),
            speed_mps=speed,
            timestamp_ms=int(fix.timestamp_ms),
            altitude_m=fix.altitude_m,
        )
        recorded = False
        if prev is None:
            s.route.append(point)
            recorded = True
        else:
            delta = distance_between_m(prev.position, fix.position)
            # Measured from the last recorded point; below the floor is jitter.
            if delta > self._cfg.min_segment_m:
                s.distance_m += delta
                s.route.extend(self._interpolate(prev, s.prev_speed_mps, point, delta))
                s.route.append(point)
                recorded = True

        if recorded:
            s.prev_fix = fix
            s.prev_speed_mps = speed
        self._refresh_totals(s, now)
        s.max_speed_mps = max(s.max_speed_mps, speed)
        s.updated_at_ms = now
        return recorded

    def _interpolate(self, prev: GeoFix, prev_speed: float, cur: RoutePoint, delta_m: float) -> List[RoutePoint]:
        if not self._cfg.interpolation_enabled:
            return []
        fr = interpolation_fractions(delta_m, self._cfg.interpolation_spacing_m, self._cfg.max_interpolated_points)
        if fr.size == 0:
            return []
        coords = interpolate_segment(prev.position, int(prev.timestamp_ms), (cur.latitude, cur.longitude), cur.timestamp_ms, fr)
        speeds = lerp_optional(prev_speed, cur.speed_mps, fr)
        alts = lerp_optional(prev.altitude_m, cur.altitude_m, fr)
        return [
            RoutePoint(latitude=lat, longitude=lon, speed_mps=float(v or 0.0), timestamp_ms=t, altitude_m=alt, synthetic=True)
            for (lat, lon, t), v, alt in zip(coords, speeds, alts)
        ]

    @classmethod
    def _refresh_totals(cls, s: _TripSession, now: int) -> None:
        s.active_duration_s = cls._active_duration_s(s, now)
        s.average_speed_mps = s.distance_m / s.active_duration_s if s.active_duration_s > 0 else 0.0

    @staticmethod
    def _active_duration_s(s: _TripSession, now: int) -> int:
        active_ms = max(0, now - s.start_time_ms - s.paused_duration_ms)
        return int(active_ms // 1000)

    @staticmethod
    def _close_pause(s: _TripSession, now: int) -> None:
        if s.pause_started_at_ms is not None:
            s.paused_duration_ms += max(0, now - s.pause_started_at_ms)
            s.pause_started_at_ms = None
