from __future__ import annotations

import csv
import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from tripspeed.utils.types import GeoFix


logger = logging.getLogger("tripspeed.io.fixes")

FixCallback = Callable[[GeoFix], None]


class Subscription(Protocol):
    def remove(self) -> None:
        ...


class LocationProvider(Protocol):
    def subscribe(self, callback: FixCallback) -> Subscription:
        ...


def _opt_float(x: Optional[str]) -> Optional[float]:
    if x is None or str(x).strip() == "":
        return None
    try:
        v = float(x)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def fix_from_row(row: Dict[str, str]) -> Optional[GeoFix]:
    lat = _opt_float(row.get("latitude"))
    lon = _opt_float(row.get("longitude"))
    ts = _opt_float(row.get("timestamp_ms"))
    if lat is None or lon is None or ts is None:
        return None
    return GeoFix(
        latitude=lat,
        longitude=lon,
        timestamp_ms=int(ts),
        altitude_m=_opt_float(row.get("altitude_m")),
        horizontal_accuracy_m=_opt_float(row.get("horizontal_accuracy_m")),
        heading_deg=_opt_float(row.get("heading_deg")),
        reported_speed_mps=_opt_float(row.get("reported_speed_mps")),
    )


def load_fixes_csv(path: str) -> List[GeoFix]:
    out: List[GeoFix] = []
    with open(path, "r", encoding="utf-8", newline="") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            fix = fix_from_row(row)
            if fix is None:
                logger.warning("Skipping row %d in %s: missing latitude/longitude/timestamp_ms", line_no, path)
                continue
            out.append(fix)
    logger.info("Loaded %d fixes from %s", len(out), path)
    return out


class ReplayClock:
    """Clock that follows the timestamps of replayed fixes (epoch ms)."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = int(start_ms)

    def __call__(self) -> int:
        return self._now_ms

    def advance_to(self, t_ms: int) -> None:
        self._now_ms = max(self._now_ms, int(t_ms))


class _ReplaySubscription:
    def __init__(self, provider: "ReplayLocationProvider", callback: FixCallback) -> None:
        self._provider = provider
        self.callback = callback
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        self._provider._detach(self)


class ReplayLocationProvider:
    """Pushes a recorded fix sequence to its subscribers, in order."""

    def __init__(self, fixes: Iterable[GeoFix], clock: Optional[ReplayClock] = None) -> None:
        self._fixes = list(fixes)
        self._clock = clock
        self._subs: List[_ReplaySubscription] = []

    def subscribe(self, callback: FixCallback) -> Subscription:
        sub = _ReplaySubscription(self, callback)
        self._subs.append(sub)
        return sub

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    def play(self) -> int:
        """Deliver all fixes; returns how many were delivered to at least one subscriber."""
        delivered = 0
        for fix in self._fixes:
            if not self._subs:
                break
            if self._clock is not None:
                self._clock.advance_to(fix.timestamp_ms)
            hit = False
            for sub in list(self._subs):
                # A callback may remove any subscription, including later ones.
                if sub.active:
                    sub.callback(fix)
                    hit = True
            if hit:
                delivered += 1
        return delivered

    def _detach(self, sub: _ReplaySubscription) -> None:
        if sub in self._subs:
            self._subs.remove(sub)
