from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from tripspeed.geo.haversine import haversine_m
from tripspeed.speed_estimation.smoothing import KalmanState, clamp_alpha, kalman_then_ema
from tripspeed.utils.types import LatLon, is_valid_lat_lon


logger = logging.getLogger("tripspeed.speed_estimation.filter")

GATE_ACCURACY = "accuracy"
GATE_SPEED_JUMP = "speed_jump"
GATE_POSITION_JUMP = "position_jump"


@dataclass(frozen=True)
class SpeedFilterConfig:
    max_accuracy_m: float = 50.0
    max_speed_jump_mps: float = 10.0
    max_position_jump_m: float = 10.0
    position_jump_window_s: float = 0.1
    max_speed_mps: float = 55.5
    process_noise: float = 0.01
    measurement_noise: float = 0.25
    initial_variance: float = 1.0
    ema_alpha: float = 0.4
    zero_snap_mps: float = 0.2

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SpeedFilterConfig":
        gates = d.get("gates", {}) or {}
        kalman = d.get("kalman", {}) or {}
        ema = d.get("ema", {}) or {}
        return SpeedFilterConfig(
            max_accuracy_m=float(gates.get("max_accuracy_m", 50.0)),
            max_speed_jump_mps=float(gates.get("max_speed_jump_mps", 10.0)),
            max_position_jump_m=float(gates.get("max_position_jump_m", 10.0)),
            position_jump_window_s=float(gates.get("position_jump_window_s", 0.1)),
            max_speed_mps=float(d.get("max_speed_mps", 55.5)),
            process_noise=float(kalman.get("process_noise", 0.01)),
            measurement_noise=float(kalman.get("measurement_noise", 0.25)),
            initial_variance=float(kalman.get("initial_variance", 1.0)),
            ema_alpha=float(ema.get("alpha", 0.4)),
            zero_snap_mps=float(d.get("zero_snap_mps", 0.2)),
        )


@dataclass(frozen=True)
class FilterState:
    kalman: KalmanState = KalmanState()
    ema_value: Optional[float] = None
    last_accepted_raw_speed: Optional[float] = None
    last_position: Optional[LatLon] = None
    last_position_ts_ms: Optional[int] = None
    last_filtered_speed: float = 0.0

    @staticmethod
    def initial(cfg: SpeedFilterConfig) -> "FilterState":
        return FilterState(kalman=KalmanState(x=0.0, p=float(cfg.initial_variance)))


def sanitize_speed(v: Optional[float]) -> float:
    if v is None:
        return 0.0
    v = float(v)
    if not math.isfinite(v) or v < 0.0:
        return 0.0
    return v


def _finite_or_none(v: Optional[float]) -> Optional[float]:
    if v is None:
        return None
    v = float(v)
    return v if math.isfinite(v) else None


def _valid_position(p: Optional[LatLon]) -> Optional[LatLon]:
    if p is None:
        return None
    lat, lon = float(p[0]), float(p[1])
    if not is_valid_lat_lon(lat, lon):
        return None
    return (lat, lon)


def check_gates(
    state: FilterState,
    cfg: SpeedFilterConfig,
    raw_speed_mps: float,
    accuracy_m: Optional[float],
    position: Optional[LatLon],
    timestamp_ms: Optional[int],
) -> Optional[str]:
    """Return the name of the first rejecting gate, or ``None`` if the sample passes."""
    if accuracy_m is not None and accuracy_m > cfg.max_accuracy_m:
        return GATE_ACCURACY

    # Compared against the last gated raw speed, not the smoothed output.
    if state.last_accepted_raw_speed is not None:
        if abs(raw_speed_mps - state.last_accepted_raw_speed) > cfg.max_speed_jump_mps:
            return GATE_SPEED_JUMP

    if (
        position is not None
        and timestamp_ms is not None
        and state.last_position is not None
        and state.last_position_ts_ms is not None
    ):
        elapsed_s = (int(timestamp_ms) - int(state.last_position_ts_ms)) / 1000.0
        if 0.0 < elapsed_s < cfg.position_jump_window_s:
            d = haversine_m(state.last_position[0], state.last_position[1], position[0], position[1])
            if d > cfg.max_position_jump_m:
                return GATE_POSITION_JUMP
    return None


def filter_step(
    state: FilterState,
    cfg: SpeedFilterConfig,
    raw_speed_mps: Optional[float],
    accuracy_m: Optional[float] = None,
    position: Optional[LatLon] = None,
    timestamp_ms: Optional[int] = None,
) -> Tuple[FilterState, float]:
    """Pure filter transition: ``(state, input) -> (new_state, filtered_speed)``.

    A rejected sample returns the state unchanged together with the previous
    output, so callers always get a well-defined speed.
    """
    new_state, out, _ = _step(state, cfg, raw_speed_mps, accuracy_m, position, timestamp_ms)
    return new_state, out


def _step(
    state: FilterState,
    cfg: SpeedFilterConfig,
    raw_speed_mps: Optional[float],
    accuracy_m: Optional[float],
    position: Optional[LatLon],
    timestamp_ms: Optional[int],
) -> Tuple[FilterState, float, Optional[str]]:
    raw = sanitize_speed(raw_speed_mps)
    acc = _finite_or_none(accuracy_m)
    pos = _valid_position(position)

    gate = check_gates(state, cfg, raw, acc, pos, timestamp_ms)
    if gate is not None:
        return state, float(state.last_filtered_speed), gate

    gated = min(raw, float(cfg.max_speed_mps))
    kalman, ema_value = kalman_then_ema(
        state.kalman,
        state.ema_value,
        gated,
        cfg.process_noise,
        cfg.measurement_noise,
        clamp_alpha(cfg.ema_alpha),
    )
    out = 0.0 if ema_value < cfg.zero_snap_mps else float(ema_value)

    new_state = replace(
        state,
        kalman=kalman,
        ema_value=ema_value,
        last_accepted_raw_speed=gated,
        last_filtered_speed=out,
    )
    if pos is not None and timestamp_ms is not None:
        new_state = replace(new_state, last_position=pos, last_position_ts_ms=int(timestamp_ms))
    return new_state, out, None


class SpeedFilter:
    """Per-session holder of a ``FilterState`` driven by ``filter_step``."""

    def __init__(self, cfg: Optional[SpeedFilterConfig] = None) -> None:
        self._cfg = cfg or SpeedFilterConfig()
        self._state = FilterState.initial(self._cfg)
        self._last_rejection: Optional[str] = None

    @property
    def config(self) -> SpeedFilterConfig:
        return self._cfg

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def last_rejection(self) -> Optional[str]:
        return self._last_rejection

    @property
    def current_speed_mps(self) -> float:
        return float(self._state.last_filtered_speed)

    def filter(
        self,
        raw_speed_mps: Optional[float],
        accuracy_m: Optional[float] = None,
        position: Optional[LatLon] = None,
        timestamp_ms: Optional[int] = None,
    ) -> float:
        self._state, out, gate = _step(self._state, self._cfg, raw_speed_mps, accuracy_m, position, timestamp_ms)
        self._last_rejection = gate
        if gate is not None:
            logger.debug("Rejected sample v=%s acc=%s gate=%s, holding %.3f m/s", raw_speed_mps, accuracy_m, gate, out)
        return out

    def reset(self) -> None:
        self._state = FilterState.initial(self._cfg)
        self._last_rejection = None
