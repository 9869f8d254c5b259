from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class KalmanState:
    """Scalar Kalman state: estimate ``x`` and variance ``p``."""

    x: float = 0.0
    p: float = 1.0


def kalman_update(state: KalmanState, measurement: float, process_noise: float, measurement_noise: float) -> KalmanState:
    # Constant model, no control input: predict is identity plus process noise.
    x_pred = float(state.x)
    p_pred = float(state.p) + float(process_noise)
    denom = p_pred + float(measurement_noise)
    if denom <= 0.0:
        return KalmanState(x=float(measurement), p=p_pred)
    k = p_pred / denom
    x = x_pred + k * (float(measurement) - x_pred)
    p = (1.0 - k) * p_pred
    return KalmanState(x=float(x), p=float(p))


def clamp_alpha(alpha: float, lo: float = 0.1, hi: float = 0.9) -> float:
    return max(float(lo), min(float(hi), float(alpha)))


def ema_update(value: Optional[float], new: float, alpha: float) -> float:
    """
    Exponential moving average step for scalar speed values.

    ``value`` is ``None`` until the first sample, which seeds the average directly.
    """
    if value is None:
        return float(new)
    a = float(alpha)
    return float(a * float(new) + (1.0 - a) * float(value))


def kalman_then_ema(
    kalman: KalmanState,
    ema_value: Optional[float],
    measurement: float,
    process_noise: float,
    measurement_noise: float,
    alpha: float,
) -> Tuple[KalmanState, float]:
    k = kalman_update(kalman, measurement, process_noise, measurement_noise)
    return k, ema_update(ema_value, k.x, alpha)
