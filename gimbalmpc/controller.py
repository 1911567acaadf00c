"""Two-axis (yaw and pitch) gimbal controller built on per-axis MPC solvers."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from .solver import DimensionError, TinyMpcSolver
from .targets import (
    ControlOutput,
    TargetParams,
    TargetParamsSpin,
    angle_to_gimbal,
    fire_pitch,
    fire_yaw,
    fix_angle,
    fly_time_norm,
    fly_time_spin,
)

_log = logging.getLogger(__name__)

_STATES = 2
_INPUTS = 1

LARGE_ARMOR_WIDTH = 0.230
SMALL_ARMOR_WIDTH = 0.135

Target = Union[TargetParamsSpin, TargetParams]


def _vector(name: str, values: Sequence[float], size: int) -> tuple[float, ...]:
    result = tuple(float(v) for v in np.asarray(values, dtype=float).reshape(-1))
    if len(result) != size:
        raise DimensionError(f"{name} vector has incorrect dimensions.")
    return result


@dataclass(frozen=True)
class AxisConfig:
    """MPC configuration of one gimbal axis, modelled as a double integrator.

    ``q_diag``, ``x_min`` and ``x_max`` have two entries (position, velocity);
    ``r_diag``, ``u_min`` and ``u_max`` have one (acceleration).
    """

    horizon: int
    dt: float
    rho: float
    q_diag: Sequence[float]
    r_diag: Sequence[float]
    x_min: Sequence[float]
    x_max: Sequence[float]
    u_min: Sequence[float]
    u_max: Sequence[float]

    def __post_init__(self) -> None:
        if self.horizon <= 1:
            raise ValueError("Horizon is too small.")
        for name, size in (("q_diag", _STATES), ("r_diag", _INPUTS), ("x_min", _STATES),
                           ("x_max", _STATES), ("u_min", _INPUTS), ("u_max", _INPUTS)):
            object.__setattr__(self, name, _vector(name, getattr(self, name), size))

    def build_solver(self) -> TinyMpcSolver:
        """Create the MPC solver for this axis."""
        dt, n = self.dt, self.horizon
        adyn = np.array([[1.0, dt], [0.0, 1.0]])
        bdyn = np.array([[0.5 * dt * dt], [dt]])
        x_min = np.tile(np.array(self.x_min)[:, None], (1, n))
        x_max = np.tile(np.array(self.x_max)[:, None], (1, n))
        u_min = np.tile(np.array(self.u_min)[:, None], (1, n - 1))
        u_max = np.tile(np.array(self.u_max)[:, None], (1, n - 1))
        return TinyMpcSolver(adyn, bdyn, np.diag(self.q_diag), np.diag(self.r_diag),
                             x_min, x_max, u_min, u_max, _STATES, _INPUTS, n, self.rho, False)


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def _spin_phase(params: TargetParamsSpin, elapsed: float) -> tuple[float, int]:
    """Angle of the plate to be hit after ``elapsed`` seconds, and how many plates have passed."""
    direction = _sign(params.rotate_speed)
    angle = params.yaw_to_cam + params.rotate_speed * elapsed
    hits = int(abs(math.floor((direction * angle + 0.5 * params.cyc_angle) / params.cyc_angle)))
    return angle - direction * hits * params.cyc_angle, hits


class GimbalController:
    """Computes optimal yaw and pitch accelerations to track a target."""

    def __init__(self, yaw: AxisConfig, pitch: AxisConfig):
        self.yaw = yaw
        self.pitch = pitch
        self._yaw_solver = yaw.build_solver()
        self._pitch_solver = pitch.build_solver()

    def update(self, params: Target, yaw_pos: float, yaw_vel: float,
               pitch_pos: float, pitch_vel: float) -> ControlOutput:
        """Run one control cycle from the current axis states."""
        start = time.perf_counter()
        x_ref_yaw, x_ref_pitch = self.reference_trajectory(params)

        yaw_solution = self._run(self._yaw_solver, self.yaw, x_ref_yaw, yaw_pos, yaw_vel)
        pitch_solution = self._run(self._pitch_solver, self.pitch, x_ref_pitch,
                                   pitch_pos, pitch_vel)

        if isinstance(params, TargetParamsSpin):
            shoot = self.shoot_flag(yaw_solution.x, x_ref_yaw, params)
        else:
            shoot = False

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        return ControlOutput(
            position_goal_pitch=float(x_ref_pitch[0, 0]),
            velocity_goal_pitch=float(x_ref_pitch[1, 0]),
            position_pred_pitch=float(pitch_solution.x[0, 1]),
            velocity_pred_pitch=float(pitch_solution.x[1, 1]),
            acceleration_pitch=float(pitch_solution.u[0, 0]),
            iterations_pitch=pitch_solution.iterations,
            position_goal_yaw=float(x_ref_yaw[0, 0]),
            velocity_goal_yaw=float(x_ref_yaw[1, 0]),
            position_pred_yaw=float(yaw_solution.x[0, 1]),
            velocity_pred_yaw=float(yaw_solution.x[1, 1]),
            acceleration_yaw=float(yaw_solution.u[0, 0]),
            iterations_yaw=yaw_solution.iterations,
            shoot_flag=shoot,
            solve_time_ms=elapsed_ms,
        )

    @staticmethod
    def _run(solver: TinyMpcSolver, axis: AxisConfig, x_ref: np.ndarray,
             pos: float, vel: float):
        solver.set_initial_state([pos, vel])
        solver.set_state_reference(x_ref)
        solver.set_input_reference(np.zeros((_INPUTS, axis.horizon - 1)))
        solver.solve()
        return solver.solution

    def reference_goal(self, params: Target) -> tuple[float, float, float]:
        """Aim point for the current instant: ``(pitch, yaw, distance)``."""
        if isinstance(params, TargetParamsSpin):
            fly = fly_time_spin(params, 0.0)
            x = params.pos_x + params.spd_x * fly
            z = params.pos_z + params.spd_z * fly
            dist_xz = math.hypot(x, z)
            angle, hits = _spin_phase(params, fly)
            odd = bool(hits & 1)
            r_car = params.r_car_next if odd else params.r_car
            armor_y = params.pos_y + params.delta_y_next if odd else params.pos_y
            yaw = angle_to_gimbal(angle, r_car, dist_xz) + fire_yaw(x, z)
            pitch = fire_pitch(armor_y, dist_xz - math.cos(angle) * r_car, params.fly_speed)
            return pitch, yaw, math.hypot(dist_xz, armor_y)
        if isinstance(params, TargetParams):
            fly = fly_time_norm(params, 0.0)
            x = params.pos_x + params.spd_x * fly
            y = params.pos_y + params.spd_y * fly
            z = params.pos_z + params.spd_z * fly
            dist_xz = math.hypot(x, z)
            return fire_pitch(y, dist_xz, params.fly_speed), fire_yaw(x, z), math.hypot(dist_xz, y)
        raise TypeError(f"unsupported target type: {type(params).__name__}")

    def reference_trajectory(self, params: Target) -> tuple[np.ndarray, np.ndarray]:
        """Reference state trajectories ``(yaw, pitch)``, each [2, horizon] of position and speed."""
        if isinstance(params, TargetParamsSpin):
            yaw_points = self._spin_yaw_points(params)
            pitch_points = self._spin_pitch_points(params)
        elif isinstance(params, TargetParams):
            yaw_points = self._norm_yaw_points(params)
            pitch_points = self._norm_pitch_points(params)
        else:
            raise TypeError(f"unsupported target type: {type(params).__name__}")

        x_ref_yaw = np.zeros((_STATES, self.yaw.horizon))
        last_yaw = None
        for i, (position, speed) in enumerate(yaw_points):
            if last_yaw is not None:
                position = last_yaw + fix_angle(last_yaw, position)
            last_yaw = position
            x_ref_yaw[:, i] = (position, speed)

        x_ref_pitch = np.zeros((_STATES, self.pitch.horizon))
        for i, point in enumerate(pitch_points):
            x_ref_pitch[:, i] = point
        return x_ref_yaw, x_ref_pitch

    def _spin_yaw_points(self, params: TargetParamsSpin):
        for i in range(self.yaw.horizon):
            t = i * self.yaw.dt
            fly = fly_time_spin(params, t)
            x = params.pos_x + params.spd_x * (t + fly)
            z = params.pos_z + params.spd_z * (t + fly)
            dist_xz = math.hypot(x, z)
            angle, hits = _spin_phase(params, fly + t)
            r_car = params.r_car_next if hits & 1 else params.r_car
            linear_speed = r_car * params.rotate_speed
            base = angle_to_gimbal(angle, r_car, dist_xz)
            armor_dist = math.sqrt(r_car * r_car + dist_xz * dist_xz
                                   + 2 * r_car * dist_xz * math.cos(angle))
            speed = linear_speed * math.cos(angle) / armor_dist
            speed -= (params.pos_x * params.spd_z - params.pos_z * params.spd_x) / (armor_dist ** 2)
            yield base + fire_yaw(x, z), speed

    def _spin_pitch_points(self, params: TargetParamsSpin):
        for i in range(self.pitch.horizon):
            t = i * self.pitch.dt
            fly = fly_time_spin(params, t)
            x = params.pos_x + params.spd_x * (t + fly)
            z = params.pos_z + params.spd_z * (t + fly)
            dist_xz = math.hypot(x, z)
            angle, hits = _spin_phase(params, fly + t)
            odd = bool(hits & 1)
            r_car = params.r_car_next if odd else params.r_car
            armor_y = params.pos_y + params.delta_y_next if odd else params.pos_y
            dist_xz_real = dist_xz - math.cos(angle) * r_car
            horizontal_speed = (x * params.spd_z + z * params.spd_x) / dist_xz
            dist_all = math.hypot(dist_xz, armor_y)
            speed = (-armor_y * horizontal_speed) / (dist_all * dist_all)
            yield fire_pitch(armor_y, dist_xz_real, params.fly_speed), speed

    def _norm_yaw_points(self, params: TargetParams):
        for i in range(self.yaw.horizon):
            t = i * self.yaw.dt
            fly = fly_time_norm(params, t)
            x = params.pos_x + params.spd_x * (t + fly)
            z = params.pos_z + params.spd_z * (t + fly)
            dist_xz = math.hypot(x, z)
            speed = -(x * params.spd_z - z * params.spd_x) / (dist_xz * dist_xz)
            yield fire_yaw(x, z), speed

    def _norm_pitch_points(self, params: TargetParams):
        for i in range(self.pitch.horizon):
            t = i * self.pitch.dt
            fly = fly_time_norm(params, t)
            x = params.pos_x + params.spd_x * (t + fly)
            z = params.pos_z + params.spd_z * (t + fly)
            dist_xz = math.hypot(x, z)
            height = params.pos_y + params.spd_y * (t + fly)
            horizontal_speed = (x * params.spd_x + z * params.spd_z) / dist_xz
            dist_all = math.hypot(dist_xz, height)
            speed = (dist_xz * params.spd_y - height * horizontal_speed) / (dist_all * dist_all)
            yield fire_pitch(height, dist_xz, params.fly_speed), speed

    def shoot_flag(self, predicted_yaw, reference_yaw, params: TargetParamsSpin) -> bool:
        """Whether the predicted yaw at the moment of impact lies within the armour plate."""
        horizon, dt = self.yaw.horizon, self.yaw.dt
        if params.action_time > (horizon - 1) * dt or params.action_time < 0:
            _log.debug("timeToHit is too long to predict!")
            return False

        k = int(math.floor(params.action_time / dt + 0.5))
        k = max(0, min(k, horizon - 1))
        predicted = np.asarray(predicted_yaw, dtype=float)
        reference = np.asarray(reference_yaw, dtype=float)
        error = abs(predicted[0, k] - reference[0, k])

        angle, hits = _spin_phase(params, params.action_time)
        r_car = params.r_car_next if hits % 2 == 1 else params.r_car
        dist = params.dist
        armor_dist = math.sqrt(r_car * r_car + dist * dist + 2 * r_car * dist * math.cos(angle))
        width = LARGE_ARMOR_WIDTH if params.is_large_armor else SMALL_ARMOR_WIDTH
        projected = math.cos(angle) * (width / 2.0)
        threshold = math.atan(projected / armor_dist)
        return error < threshold