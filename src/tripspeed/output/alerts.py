from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional

from tripspeed.utils.types import SessionSample


SpeedField = Literal["raw", "filtered"]


@dataclass(frozen=True)
class SpeedAlertConfig:
    enabled: bool = False
    speed_limit_kmh: float = 80.0
    threshold_kmh: float = 0.0
    min_consecutive_samples: int = 3
    cooldown_s: float = 10.0
    use_speed: SpeedField = "filtered"

    @staticmethod
    def from_dict(d: Dict) -> "SpeedAlertConfig":
        use_speed = str(d.get("use_speed", "filtered")).lower()
        if use_speed not in {"raw", "filtered"}:
            raise ValueError("alerts.use_speed must be one of: raw, filtered")
        return SpeedAlertConfig(
            enabled=bool(d.get("enabled", False)),
            speed_limit_kmh=float(d.get("speed_limit_kmh", 80.0)),
            threshold_kmh=float(d.get("threshold_kmh", 0.0)),
            min_consecutive_samples=int(d.get("min_consecutive_samples", 3)),
            cooldown_s=float(d.get("cooldown_s", 10.0)),
            use_speed=use_speed,  # type: ignore[arg-type]
        )

    def speed_limit_mps(self) -> float:
        return float(self.speed_limit_kmh) / 3.6

    def threshold_mps(self) -> float:
        return float(self.threshold_kmh) / 3.6


@dataclass(frozen=True)
class SpeedAlertEvent:
    trip_id: Optional[str]
    timestamp_ms: int
    speed_mps: float
    speed_limit_mps: float
    threshold_mps: float
    use_speed: SpeedField
    latitude: float
    longitude: float


class SpeedAlertEngine:
    """Over-speed detection for a single session with debounce and cooldown."""

    def __init__(self, cfg: SpeedAlertConfig) -> None:
        self._cfg = cfg
        self._consecutive = 0
        self._last_alert_ms: Optional[int] = None
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def update(self, samples: List[SessionSample]) -> List[SpeedAlertEvent]:
        if not self._cfg.enabled:
            self._active = False
            return []
        events: List[SpeedAlertEvent] = []
        limit = self._cfg.speed_limit_mps()
        thr = self._cfg.threshold_mps()
        min_n = max(1, int(self._cfg.min_consecutive_samples))
        cooldown_ms = max(0.0, float(self._cfg.cooldown_s)) * 1000.0

        for s in samples:
            v = self._select_speed(s)
            if v > (limit + thr):
                self._consecutive += 1
            else:
                self._consecutive = 0
                self._active = False
                continue

            if self._consecutive < min_n:
                continue
            self._active = True

            if self._last_alert_ms is not None and (int(s.timestamp_ms) - self._last_alert_ms) < cooldown_ms:
                continue

            self._last_alert_ms = int(s.timestamp_ms)
            events.append(
                SpeedAlertEvent(
                    trip_id=s.trip_id,
                    timestamp_ms=int(s.timestamp_ms),
                    speed_mps=float(v),
                    speed_limit_mps=float(limit),
                    threshold_mps=float(thr),
                    use_speed=self._cfg.use_speed,
                    latitude=float(s.latitude),
                    longitude=float(s.longitude),
                )
            )
        return events

    def reset(self) -> None:
        self._consecutive = 0
        self._last_alert_ms = None
        self._active = False

    def _select_speed(self, s: SessionSample) -> float:
        if self._cfg.use_speed == "raw":
            return float(s.speed_mps_candidate)
        return float(s.speed_mps_filtered)
