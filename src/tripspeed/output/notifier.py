from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

from tripspeed.output.alerts import SpeedAlertEvent


logger = logging.getLogger("tripspeed.output.notifier")


class Notifier(Protocol):
    def notify_speed(self, event: SpeedAlertEvent) -> None:
        ...


@dataclass
class LogNotifier(Notifier):
    level: str = "WARNING"

    def notify_speed(self, event: SpeedAlertEvent) -> None:
        lvl = getattr(logging, str(self.level).upper(), logging.WARNING)
        logger.log(
            lvl,
            "SPEED_ALERT trip=%s v=%.1f km/h limit=%.1f km/h (+%.1f) at (%.6f, %.6f) t=%d",
            event.trip_id,
            event.speed_mps * 3.6,
            event.speed_limit_mps * 3.6,
            event.threshold_mps * 3.6,
            event.latitude,
            event.longitude,
            event.timestamp_ms,
        )


@dataclass
class CollectingNotifier(Notifier):
    events: List[SpeedAlertEvent] = field(default_factory=list)

    def notify_speed(self, event: SpeedAlertEvent) -> None:
        self.events.append(event)


def create_notifier(cfg: Dict[str, Any]) -> Notifier:
    t = str(cfg.get("type", "log")).lower()
    if t == "log":
        return LogNotifier(level=str(cfg.get("level", "WARNING")))
    if t == "collect":
        return CollectingNotifier()
    raise ValueError(f"Unknown notifier.type: {t}")
