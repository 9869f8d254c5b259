from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from tripspeed.io.fixes import LocationProvider, Subscription
from tripspeed.output.alerts import SpeedAlertConfig, SpeedAlertEngine
from tripspeed.output.notifier import Notifier, create_notifier
from tripspeed.output.trip_store import TripStore
from tripspeed.speed_estimation.estimator import RawSpeedEstimator
from tripspeed.speed_estimation.filter import SpeedFilter, SpeedFilterConfig
from tripspeed.trip.accumulator import Clock, TripAccumulator, TripAccumulatorConfig
from tripspeed.utils.config import section
from tripspeed.utils.types import GeoFix, SessionSample, Trip, TripStatus


logger = logging.getLogger("tripspeed.pipeline.session")

SPEED_SOURCES = {"auto", "reported", "delta"}
NO_BASELINE = "no_baseline"


@dataclass(frozen=True)
class SessionConfig:
    speed_source: str = "auto"
    speed_filter: SpeedFilterConfig = field(default_factory=SpeedFilterConfig)
    trip: TripAccumulatorConfig = field(default_factory=TripAccumulatorConfig)
    alerts: SpeedAlertConfig = field(default_factory=SpeedAlertConfig)
    notifier: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SessionConfig":
        source = str(d.get("speed_source", "auto")).lower()
        if source not in SPEED_SOURCES:
            raise ValueError("speed_source must be one of: auto, reported, delta")
        return SessionConfig(
            speed_source=source,
            speed_filter=SpeedFilterConfig.from_dict(section(d, "speed_filter")),
            trip=TripAccumulatorConfig.from_dict(section(d, "trip")),
            alerts=SpeedAlertConfig.from_dict(section(d, "alerts")),
            notifier=section(d, "notifier"),
        )


def select_candidate_speed(source: str, reported_mps: Optional[float], delta_mps: Optional[float]) -> Optional[float]:
    """Speed to feed the filter, or ``None`` when dd/dt has no baseline yet."""
    has_reported = reported_mps is not None and math.isfinite(reported_mps) and reported_mps >= 0.0
    if source == "reported":
        return float(reported_mps) if has_reported else 0.0
    if source == "auto" and has_reported:
        return float(reported_mps)
    return None if delta_mps is None else float(delta_mps)


class TrackingSession:
    """
    One tracking session: estimator, filter and trip accumulator driven by
    pushed fixes.

    All three components are owned by the session and reset on ``start``; no
    state is shared with other sessions. ``stop`` removes the provider
    subscription before finalizing the trip, and fixes that still arrive
    afterwards are ignored.
    """

    def __init__(
        self,
        cfg: Optional[SessionConfig] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[Notifier] = None,
        store: Optional[TripStore] = None,
        on_sample: Optional[Callable[[SessionSample], None]] = None,
    ) -> None:
        self._cfg = cfg or SessionConfig()
        self._on_sample = on_sample
        self._estimator = RawSpeedEstimator()
        self._filter = SpeedFilter(self._cfg.speed_filter)
        self._trips = TripAccumulator(self._cfg.trip, clock=clock, store=store)
        self._alerts = SpeedAlertEngine(self._cfg.alerts)
        self._notifier: Notifier = notifier or create_notifier(dict(self._cfg.notifier))
        self._subscription: Optional[Subscription] = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def current_speed_mps(self) -> float:
        return self._filter.current_speed_mps

    @property
    def trip(self) -> Optional[Trip]:
        return self._trips.trip

    @property
    def status(self) -> TripStatus:
        return self._trips.status

    @property
    def alert_active(self) -> bool:
        return self._alerts.is_active

    def start(self, provider: Optional[LocationProvider] = None) -> Trip:
        if self._active:
            return self._trips.start()
        self._estimator.reset()
        self._filter.reset()
        self._alerts.reset()
        trip = self._trips.start()
        self._active = True
        if provider is not None:
            self._subscription = provider.subscribe(self.on_fix)
        return trip

    def pause(self) -> None:
        self._trips.pause()

    def resume(self) -> None:
        self._trips.resume()

    def stop(self) -> Optional[Trip]:
        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None
        self._active = False
        return self._trips.stop()

    def on_fix(self, fix: GeoFix) -> Optional[SessionSample]:
        if not self._active:
            logger.debug("Dropping fix t=%s delivered to inactive session", fix.timestamp_ms)
            return None

        delta_mps = self._estimator.estimate_or_none(fix)
        candidate = select_candidate_speed(self._cfg.speed_source, fix.reported_speed_mps, delta_mps)
        if candidate is None:
            filtered = self._filter.current_speed_mps
            rejected_by: Optional[str] = NO_BASELINE
        else:
            position = fix.position if fix.has_valid_position() else None
            filtered = self._filter.filter(candidate, fix.horizontal_accuracy_m, position, int(fix.timestamp_ms))
            rejected_by = self._filter.last_rejection
        self._trips.update(fix, filtered)

        sample = SessionSample(
            trip_id=self._trips.trip_id,
            timestamp_ms=int(fix.timestamp_ms),
            latitude=float(fix.latitude),
            longitude=float(fix.longitude),
            accuracy_m=fix.horizontal_accuracy_m,
            speed_mps_reported=fix.reported_speed_mps,
            speed_mps_delta=float(delta_mps or 0.0),
            speed_mps_candidate=float(candidate or 0.0),
            speed_mps_filtered=float(filtered),
            rejected_by=rejected_by,
            trip_status=self._trips.status,
        )
        for event in self._alerts.update([sample]):
            self._notifier.notify_speed(event)
        if self._on_sample is not None:
            self._on_sample(sample)
        return sample
