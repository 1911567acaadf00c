import math

import pytest

from gimbalmpc.targets import (
    GRAVITY,
    TargetParams,
    TargetParamsSpin,
    angle_to_gimbal,
    fire_pitch,
    fire_yaw,
    fix_angle,
    fly_time_norm,
    fly_time_spin,
)


def make_spin(**overrides):
    values = dict(
        r_car=0.3, r_car_next=0.4, delta_y_next=0.1, rotate_speed=6.0,
        pos_x=-1.0, spd_x=1.0, pos_y=-0.1, spd_y=0.1, pos_z=3.5, spd_z=0.0,
        pos_yaw=0.0, cyc_angle=math.pi / 2.0, fly_speed=20.0, action_time=0.1,
        is_large_armor=False,
    )
    values.update(overrides)
    return TargetParamsSpin(**values)


def make_norm(**overrides):
    values = dict(pos_x=-1.0, spd_x=1.0, pos_y=-0.1, spd_y=0.1, pos_z=3.5, spd_z=0.0,
                  fly_speed=20.0, action_time=0.1, is_large_armor=False)
    values.update(overrides)
    return TargetParams(**values)


@pytest.mark.parametrize("field, value, message", [
    ("r_car", -0.1, "rCar cannot be negative"),
    ("r_car_next", -0.1, "rCarNext cannot be negative"),
    ("fly_speed", 0.0, "flySpeed must be positive"),
    ("action_time", -1.0, "actionTime cannot be negative"),
])
def test_spin_validation(field, value, message):
    with pytest.raises(ValueError, match=message):
        make_spin(**{field: value})


@pytest.mark.parametrize("field, value, message", [
    ("fly_speed", 1e-7, "flySpeed must be positive"),
    ("action_time", -0.5, "actionTime cannot be negative"),
])
def test_norm_validation(field, value, message):
    with pytest.raises(ValueError, match=message):
        make_norm(**{field: value})


def test_spin_derived_values():
    p = make_spin(pos_x=0.0, pos_z=-2.5, pos_yaw=0.7, r_car=1.0, rotate_speed=-3.0)
    assert p.dist == pytest.approx(2.5)
    assert p.linear_speed == pytest.approx(-3.0)
    assert p.r_car_mean == pytest.approx(0.35 + 0.35)


def test_spin_yaw_to_cam_on_axis():
    p = make_spin(pos_x=0.0, pos_z=4.0, pos_yaw=0.25)
    assert p.yaw_to_cam == pytest.approx(0.25)


def test_norm_dist():
    p = make_norm(pos_x=-3.0, pos_z=4.0)
    assert p.dist == pytest.approx(5.0)


def test_angle_to_gimbal_zero_cases():
    assert angle_to_gimbal(0.0, 0.3, 4.0) == pytest.approx(0.0)
    assert angle_to_gimbal(1.2, 0.0, 4.0) == pytest.approx(0.0)


@pytest.mark.parametrize("angle", [0.1, 0.5, 1.3, 2.0])
def test_angle_to_gimbal_is_odd(angle):
    assert angle_to_gimbal(-angle, 0.3, 3.0) == pytest.approx(-angle_to_gimbal(angle, 0.3, 3.0))
    assert angle_to_gimbal(angle, 0.3, 3.0) > 0


def test_fire_yaw_straight_ahead_and_mirror():
    assert fire_yaw(0.0, 5.0) == pytest.approx(0.0)
    assert fire_yaw(-1.0, 3.0) == pytest.approx(-fire_yaw(1.0, 3.0))
    assert fire_yaw(1.0, 0.0) == pytest.approx(math.pi / 2)


@pytest.mark.parametrize("y, dist, speed", [(0.0, -1.0, 20.0), (0.0, 0.0, 20.0),
                                            (1.0, 5.0, 0.0), (0.0, 100.0, 1.0)])
def test_fire_pitch_degenerate_returns_zero(y, dist, speed):
    assert fire_pitch(y, dist, speed) == 0.0


@pytest.mark.parametrize("y, dist, speed", [(0.5, 5.0, 20.0), (-0.2, 3.5, 15.0), (1.0, 8.0, 25.0)])
def test_fire_pitch_hits_target_height(y, dist, speed):
    theta = fire_pitch(y, dist, speed)
    height = dist * math.tan(theta) - GRAVITY * dist ** 2 / (2 * speed ** 2 * math.cos(theta) ** 2)
    assert height == pytest.approx(y, abs=1e-9)
    assert theta < math.pi / 4


def test_fire_pitch_increases_with_height():
    assert fire_pitch(1.0, 5.0, 20.0) > fire_pitch(0.0, 5.0, 20.0) > fire_pitch(-1.0, 5.0, 20.0)


@pytest.mark.parametrize("last, this", [(0.0, 0.0), (3.0, -3.0), (-3.0, 3.0), (0.2, 1.1), (1.0, 7.0)])
def test_fix_angle_folds_difference(last, this):
    delta = fix_angle(last, this)
    assert -math.pi <= delta <= math.pi
    turns = (last + delta - this) / (2 * math.pi)
    assert turns == pytest.approx(round(turns), abs=1e-12)


def test_fix_angle_same_angle_is_zero():
    assert fix_angle(1.5, 1.5) == 0.0


def test_fly_time_norm_meets_target():
    p = make_norm(pos_x=1.0, spd_x=1.0, pos_y=0.2, spd_y=0.1, pos_z=3.0, spd_z=0.0)
    t = fly_time_norm(p, 0.0)
    assert t > 0
    reach = math.sqrt((p.pos_x + p.spd_x * t) ** 2 + (p.pos_y + p.spd_y * t) ** 2
                      + (p.pos_z + p.spd_z * t) ** 2)
    assert reach == pytest.approx(p.fly_speed * t)


def test_fly_time_norm_with_delay_meets_future_target():
    p = make_norm()
    delay = 0.05
    t = fly_time_norm(p, delay)
    reach = math.sqrt((p.pos_x + p.spd_x * (delay + t)) ** 2
                      + (p.pos_y + p.spd_y * (delay + t)) ** 2
                      + (p.pos_z + p.spd_z * (delay + t)) ** 2)
    assert reach == pytest.approx(p.fly_speed * t)


def test_fly_time_norm_unreachable_falls_back():
    p = make_norm(pos_x=0.0, spd_x=0.0, pos_y=0.0, spd_y=0.0, pos_z=10.0, spd_z=100.0,
                  fly_speed=10.0)
    assert fly_time_norm(p, 0.0) == pytest.approx(p.dist / p.fly_speed)


@pytest.mark.parametrize("rotate_speed", [1.0, -1.0])
def test_fly_time_spin_reaches_mean_radius(rotate_speed):
    p = make_spin(rotate_speed=rotate_speed, spd_y=0.0)
    t = fly_time_spin(p, 0.0)
    assert t > 0
    reach = math.sqrt((p.pos_x + p.spd_x * t) ** 2 + p.pos_y ** 2 + (p.pos_z + p.spd_z * t) ** 2)
    assert reach == pytest.approx(p.fly_speed * t + p.r_car_mean)


def test_fly_time_spin_unreachable_falls_back():
    p = make_spin(pos_x=0.0, spd_x=0.0, pos_y=0.0, spd_y=0.0, pos_z=10.0, spd_z=100.0,
                  fly_speed=10.0, r_car=0.0, r_car_next=0.0)
    assert fly_time_spin(p, 0.0) == pytest.approx(p.dist / p.fly_speed)