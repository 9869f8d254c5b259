import math

from tripspeed.speed_estimation.filter import (
    GATE_ACCURACY,
    GATE_POSITION_JUMP,
    GATE_SPEED_JUMP,
    FilterState,
    SpeedFilter,
    SpeedFilterConfig,
    check_gates,
    filter_step,
    sanitize_speed,
)
from tripspeed.speed_estimation.smoothing import KalmanState, clamp_alpha, ema_update, kalman_update

from track_fixtures import BASE_POINT, move_east, move_north


def test_kalman_update_first_step() -> None:
    k = kalman_update(KalmanState(x=0.0, p=1.0), 10.0, process_noise=0.01, measurement_noise=0.25)
    gain = 1.01 / 1.26
    assert abs(k.x - 10.0 * gain) < 1e-9
    assert abs(k.p - (1.0 - gain) * 1.01) < 1e-9


def test_ema_seeds_then_blends() -> None:
    v = ema_update(None, 12.0, 0.4)
    assert v == 12.0
    v = ema_update(v, 2.0, 0.4)
    assert abs(v - (0.4 * 2.0 + 0.6 * 12.0)) < 1e-9


def test_alpha_is_bounded() -> None:
    assert clamp_alpha(0.0) == 0.1
    assert clamp_alpha(1.0) == 0.9
    assert clamp_alpha(0.4) == 0.4


def test_filter_converges_on_sustained_speed() -> None:
    f = SpeedFilter()
    p = BASE_POINT
    t = 0
    out = 0.0
    for _ in range(10):
        p = move_north(p, 15.0)
        t += 1000
        out = f.filter(15.0, 5.0, p, t)
    assert abs(out - 15.0) <= 0.8


def test_poor_accuracy_holds_previous_output() -> None:
    f = SpeedFilter()
    baseline = f.filter(12.0, 5.0, BASE_POINT, 1000)
    noisy = f.filter(5.0, 120.0, BASE_POINT, 2000)
    assert abs(noisy - baseline) < 1e-6
    assert f.last_rejection == GATE_ACCURACY


def test_sudden_speed_jump_is_rejected() -> None:
    f = SpeedFilter()
    p = BASE_POINT
    stable = f.filter(12.0, 5.0, p, 1000)
    p = move_north(p, 12.0)
    reference = f.filter(13.0, 5.0, p, 2000)
    p = move_north(p, 30.0)
    jump = f.filter(30.0, 5.0, p, 3000)
    assert abs(jump - reference) < 1e-6 or abs(jump - stable) < 1e-6
    assert f.last_rejection == GATE_SPEED_JUMP


def test_speed_jump_compares_against_last_raw_not_output() -> None:
    f = SpeedFilter()
    f.filter(0.0, 5.0)
    for _ in range(3):
        f.filter(9.0, 5.0)
    # Smoothed output is still well below 9, but the raw base is 9.
    assert f.current_speed_mps < 9.0
    f.filter(18.5, 5.0)
    assert f.last_rejection is None


def test_impossible_position_jump_is_rejected() -> None:
    f = SpeedFilter()
    start = f.filter(5.0, 5.0, BASE_POINT, 1000)
    jump = f.filter(5.0, 5.0, move_east(BASE_POINT, 50.0), 1050)
    assert abs(jump - start) < 1e-6
    assert f.last_rejection == GATE_POSITION_JUMP


def test_position_jump_gate_ignores_slow_updates() -> None:
    f = SpeedFilter()
    f.filter(5.0, 5.0, BASE_POINT, 1000)
    f.filter(5.0, 5.0, move_east(BASE_POINT, 50.0), 1100)
    assert f.last_rejection is None


def test_unrealistic_speed_is_clamped() -> None:
    f = SpeedFilter()
    out = f.filter(80.0, 5.0, BASE_POINT, 1000)
    assert out <= 55.5 + 1e-6
    assert f.state.last_accepted_raw_speed == 55.5


def test_snaps_to_zero_when_stationary() -> None:
    f = SpeedFilter()
    p = BASE_POINT
    t = 1000
    f.filter(1.0, 5.0, p, t)
    for _ in range(8):
        p = move_north(p, 0.05)
        t += 1000
        f.filter(0.05, 5.0, p, t)
    t += 1000
    out = f.filter(0.0, 5.0, p, t)
    assert out == 0.0


def test_negative_and_non_finite_speeds_become_zero() -> None:
    assert sanitize_speed(-3.0) == 0.0
    assert sanitize_speed(float("nan")) == 0.0
    assert sanitize_speed(float("inf")) == 0.0
    assert sanitize_speed(None) == 0.0
    f = SpeedFilter()
    assert f.filter(float("nan")) == 0.0
    assert f.filter(-5.0, None) == 0.0
    assert f.last_rejection is None


def test_missing_or_nan_accuracy_passes_gate() -> None:
    f = SpeedFilter()
    assert f.filter(10.0, None) > 0.0
    assert f.filter(10.0, float("nan")) > 0.0
    assert f.last_rejection is None


def test_filter_step_is_pure() -> None:
    cfg = SpeedFilterConfig()
    s0 = FilterState.initial(cfg)
    s1, out1 = filter_step(s0, cfg, 10.0, 5.0, BASE_POINT, 1000)
    assert s0 == FilterState.initial(cfg)
    s1b, out1b = filter_step(s0, cfg, 10.0, 5.0, BASE_POINT, 1000)
    assert s1 == s1b and out1 == out1b
    assert s1.last_accepted_raw_speed == 10.0
    assert s1.last_position == BASE_POINT
    assert s1.last_position_ts_ms == 1000
    assert s1.last_filtered_speed == out1


def test_rejected_step_returns_state_unchanged() -> None:
    cfg = SpeedFilterConfig()
    s1, out1 = filter_step(FilterState.initial(cfg), cfg, 10.0, 5.0)
    s2, out2 = filter_step(s1, cfg, 10.0, 200.0)
    assert s2 is s1
    assert out2 == out1


def test_position_kept_when_not_provided() -> None:
    cfg = SpeedFilterConfig()
    s1, _ = filter_step(FilterState.initial(cfg), cfg, 10.0, 5.0, BASE_POINT, 1000)
    s2, _ = filter_step(s1, cfg, 10.0, 5.0)
    assert s2.last_position == BASE_POINT
    assert s2.last_position_ts_ms == 1000


def test_out_of_range_position_skips_position_gate() -> None:
    cfg = SpeedFilterConfig()
    s1, _ = filter_step(FilterState.initial(cfg), cfg, 5.0, 5.0, (1e308, 0.0), 1000)
    assert s1.last_position is None
    s2, out = filter_step(s1, cfg, 5.0, 5.0, (-1e308, 0.0), 1050)
    assert s2.last_position is None
    assert math.isfinite(out)
    s3, _ = filter_step(s2, cfg, 5.0, 5.0, BASE_POINT, 1100)
    assert s3.last_position == BASE_POINT


def test_check_gates_in_isolation() -> None:
    cfg = SpeedFilterConfig()
    s = FilterState(last_accepted_raw_speed=10.0, last_position=BASE_POINT, last_position_ts_ms=1000)
    assert check_gates(s, cfg, 10.0, 51.0, None, None) == GATE_ACCURACY
    assert check_gates(s, cfg, 10.0, 50.0, None, None) is None
    assert check_gates(s, cfg, 20.5, None, None, None) == GATE_SPEED_JUMP
    assert check_gates(s, cfg, 20.0, None, None, None) is None
    far = move_north(BASE_POINT, 11.0)
    assert check_gates(s, cfg, 10.0, None, far, 1050) == GATE_POSITION_JUMP
    assert check_gates(s, cfg, 10.0, None, far, 1000) is None
    assert check_gates(s, cfg, 10.0, None, far, None) is None
    # Accuracy is checked before the speed jump.
    assert check_gates(s, cfg, 40.0, 80.0, None, None) == GATE_ACCURACY


def test_reset_clears_all_state() -> None:
    f = SpeedFilter()
    f.filter(12.0, 5.0, BASE_POINT, 1000)
    f.filter(12.0, 5.0, move_north(BASE_POINT, 12.0), 2000)
    f.reset()
    s = f.state
    assert s.kalman == KalmanState(x=0.0, p=1.0)
    assert s.ema_value is None
    assert s.last_accepted_raw_speed is None
    assert s.last_position is None
    assert f.current_speed_mps == 0.0
    # No speed-jump lockout carried over from the previous session.
    assert f.filter(40.0, 5.0) > 0.0


def test_config_from_dict_overrides_and_defaults() -> None:
    cfg = SpeedFilterConfig.from_dict({"gates": {"max_accuracy_m": 20.0}, "ema": {"alpha": 5.0}, "max_speed_mps": 40.0})
    assert cfg.max_accuracy_m == 20.0
    assert cfg.max_speed_jump_mps == 10.0
    assert cfg.max_speed_mps == 40.0
    f = SpeedFilter(cfg)
    assert f.filter(10.0, 30.0) == 0.0
    assert f.last_rejection == GATE_ACCURACY
    assert math.isclose(f.filter(10.0, 5.0), 10.0 * 1.01 / 1.26, rel_tol=1e-9)
