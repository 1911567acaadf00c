"""Target descriptions and ballistic helpers used to build gimbal references."""

from __future__ import annotations

import math
from dataclasses import dataclass

GRAVITY = 9.8
_EPSILON = 1e-6


def _validate_shot(fly_speed: float, action_time: float) -> None:
    if fly_speed <= _EPSILON:
        raise ValueError("Input error: flySpeed must be positive.")
    if action_time < 0.0:
        raise ValueError("Input error: actionTime cannot be negative.")


@dataclass(frozen=True)
class TargetParamsSpin:
    """A spinning target: a vehicle carrying armour plates on a rotating body.

    Positions and speeds are in the world frame (m, m/s); angles in radians.
    """

    r_car: float
    r_car_next: float
    delta_y_next: float
    rotate_speed: float
    pos_x: float
    spd_x: float
    pos_y: float
    spd_y: float
    pos_z: float
    spd_z: float
    pos_yaw: float
    cyc_angle: float
    fly_speed: float
    action_time: float
    is_large_armor: bool = False

    def __post_init__(self) -> None:
        if self.r_car < 0.0:
            raise ValueError("Input error: rCar cannot be negative.")
        if self.r_car_next < 0.0:
            raise ValueError("Input error: rCarNext cannot be negative.")
        _validate_shot(self.fly_speed, self.action_time)

    @property
    def dist(self) -> float:
        """Distance to the target centre in the XZ plane."""
        return math.hypot(self.pos_x, self.pos_z)

    @property
    def linear_speed(self) -> float:
        """Tangential speed of the current armour plate."""
        return self.r_car * self.rotate_speed

    @property
    def yaw_to_cam(self) -> float:
        """Angle between the plate, the target centre and the camera."""
        return self.pos_yaw - math.atan2(self.pos_x, self.pos_z)

    @property
    def r_car_mean(self) -> float:
        """Mean armour radius, used for coarse estimates."""
        return (self.r_car + self.r_car_next) / 2.0


@dataclass(frozen=True)
class TargetParams:
    """A non-spinning target moving at constant velocity."""

    pos_x: float
    spd_x: float
    pos_y: float
    spd_y: float
    pos_z: float
    spd_z: float
    fly_speed: float
    action_time: float
    is_large_armor: bool = False

    def __post_init__(self) -> None:
        _validate_shot(self.fly_speed, self.action_time)

    @property
    def dist(self) -> float:
        """Distance to the target in the XZ plane."""
        return math.hypot(self.pos_x, self.pos_z)


@dataclass
class ControlOutput:
    """Control result for one cycle of the gimbal controller."""

    position_goal_pitch: float
    velocity_goal_pitch: float
    position_pred_pitch: float
    velocity_pred_pitch: float
    acceleration_pitch: float
    iterations_pitch: int
    position_goal_yaw: float
    velocity_goal_yaw: float
    position_pred_yaw: float
    velocity_pred_yaw: float
    acceleration_yaw: float
    iterations_yaw: int
    shoot_flag: bool
    solve_time_ms: float


def angle_to_gimbal(angle_to_cam: float, r: float, d: float) -> float:
    """Angle at the shooter between the target centre and an armour plate.

    ``angle_to_cam`` is the plate–centre–shooter angle, ``r`` the plate radius
    and ``d`` the shooter-to-centre distance.
    """
    return math.atan2(r * math.sin(angle_to_cam), d + r * math.cos(angle_to_cam))


def fire_pitch(y: float, dist: float, fly_speed: float) -> float:
    """Pitch angle (rad) that lands a projectile at height ``y`` and range ``dist``.

    Returns 0.0 for non-positive inputs or an unreachable target.
    """
    if dist <= 0 or fly_speed <= 0:
        return 0.0
    a = (GRAVITY * dist * dist) / (2.0 * fly_speed * fly_speed)
    b = -dist
    c = y + a
    delta = b * b - 4.0 * a * c
    if delta < 0:
        return 0.0
    return math.atan((-b - math.sqrt(delta)) / (2.0 * a))


def fire_yaw(x: float, z: float) -> float:
    """Yaw angle (rad) towards the point (x, z)."""
    return math.atan2(x, z)


def fix_angle(last_yaw: float, this_yaw: float) -> float:
    """Difference ``this_yaw - last_yaw`` folded across the ±π seam."""
    delta = this_yaw - last_yaw
    if delta > math.pi:
        delta -= 2 * math.pi
    elif delta < -math.pi:
        delta += 2 * math.pi
    return delta


def _earliest_positive_root(a: float, b: float, c: float, fallback: float) -> float:
    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        return fallback
    if abs(a) < _EPSILON:
        return fallback if abs(b) < _EPSILON else -c / b
    root = math.sqrt(discriminant)
    t1 = (-b + root) / (2 * a)
    t2 = (-b - root) / (2 * a)
    if t1 > _EPSILON and (t1 < t2 or t2 < _EPSILON):
        return t1
    if t2 > _EPSILON:
        return t2
    return fallback


def fly_time_spin(params: TargetParamsSpin, time_delay: float) -> float:
    """Projectile flight time to a spinning target, ``time_delay`` seconds ahead.

    The vehicle is assumed not to move vertically.
    """
    x = params.pos_x + params.spd_x * time_delay
    y = params.pos_y
    z = params.pos_z + params.spd_z * time_delay
    r_mean = params.r_car_mean
    a = (params.spd_x ** 2 + params.spd_y ** 2 + params.spd_z ** 2
         - params.fly_speed ** 2)
    b = 2 * (x * params.spd_x + y * params.spd_y + z * params.spd_z
             - r_mean * params.fly_speed * abs(params.rotate_speed))
    c = x * x + y * y + z * z - r_mean * r_mean
    return _earliest_positive_root(a, b, c, params.dist / params.fly_speed)


def fly_time_norm(params: TargetParams, time_delay: float) -> float:
    """Projectile flight time to a non-spinning target, ``time_delay`` seconds ahead."""
    x = params.pos_x + params.spd_x * time_delay
    y = params.pos_y + params.spd_y * time_delay
    z = params.pos_z + params.spd_z * time_delay
    a = (params.spd_x ** 2 + params.spd_y ** 2 + params.spd_z ** 2
         - params.fly_speed ** 2)
    b = 2 * (x * params.spd_x + y * params.spd_y + z * params.spd_z)
    c = x * x + y * y + z * z
    return _earliest_positive_root(a, b, c, params.dist / params.fly_speed)