# gimbalmpc

A two-axis (yaw and pitch) gimbal aiming controller. Each axis is modelled as a
double integrator (position and velocity, driven by acceleration) and is
tracked by a small ADMM-based model predictive control solver. The controller
builds reference trajectories for a target, with ballistic drop compensation
and projectile flight-time prediction, solves both axes, and decides whether
to fire.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `gimbalmpc.solver`: `TinyMpcSolver`, a linear MPC solver using ADMM with a
  precomputed infinite-horizon LQR gain. Also defines `SolverSettings`,
  `Solution` and `DimensionError`.
- `gimbalmpc.targets`: target descriptions (`TargetParamsSpin` for a rotating
  target carrying several armour plates, `TargetParams` for a plain moving
  target), the `ControlOutput` record, and ballistic helpers (`fire_pitch`,
  `fire_yaw`, `fly_time_spin`, `fly_time_norm`, `fix_angle`,
  `angle_to_gimbal`).
- `gimbalmpc.controller`: `AxisConfig` and `GimbalController`.

## Using the solver directly

```python
import numpy as np
from gimbalmpc.solver import TinyMpcSolver

dt, horizon = 0.01, 10
a = np.array([[1.0, dt], [0.0, 1.0]])
b = np.array([[0.5 * dt * dt], [dt]])
solver = TinyMpcSolver(
    a, b,
    np.diag([100.0, 1.0]), np.diag([0.1]),
    np.tile([[-10.0], [-5.0]], horizon), np.tile([[10.0], [5.0]], horizon),
    np.full((1, horizon - 1), -50.0), np.full((1, horizon - 1), 50.0),
    2, 1, horizon, 5.0, False,
)
solver.set_initial_state([0.0, 0.0])
solver.set_state_reference(np.tile([[1.0], [0.0]], horizon))
solver.set_input_reference(np.zeros((1, horizon - 1)))
converged = solver.solve()
print(converged, solver.solution.iterations)
print(solver.solution.x, solver.solution.u)
```

`solve()` returns `True` when the primal and dual tolerances were met within
the iteration limit (10 by default) and `False` otherwise; in both cases
`solver.solution` holds the latest state trajectory `x` [nx, N] and input
trajectory `u` [nu, N-1]. The workspace is kept between calls, so each solve
starts from the previous one.

Shape mismatches raise `DimensionError` (a subclass of `ValueError`).
Tolerances, the iteration limit, how often termination is checked and the
state and input bound switches can be changed with `update_settings`. Passing
`verbose=True` to the constructor prints the system matrices and the
precomputed LQR cache.

## Aiming at a target

```python
import math
from gimbalmpc.controller import AxisConfig, GimbalController
from gimbalmpc.targets import TargetParamsSpin

yaw = AxisConfig(
    horizon=20, dt=0.008, rho=5.0,
    q_diag=(1e8, 0.001), r_diag=(0.001,),
    x_min=(-10000.0, -20.0), x_max=(10000.0, 20.0),
    u_min=(-60.0,), u_max=(60.0,),
)
pitch = AxisConfig(
    horizon=8, dt=0.005, rho=5.0,
    q_diag=(1e8, 0.001), r_diag=(0.001,),
    x_min=(math.radians(-30), -30.0), x_max=(math.radians(60), 30.0),
    u_min=(-180.0,), u_max=(180.0,),
)
controller = GimbalController(yaw, pitch)

target = TargetParamsSpin(
    0.3, 0.4, 0.1, 6.0,      # radius, next radius, next plate height offset, spin rate
    -1.0, 1.0, -0.1, 0.1,    # x, vx, y, vy
    3.5, 0.0,                # z, vz
    0.0, math.pi / 2,        # target yaw, angle between plates
    20.0, 0.1, False,        # projectile speed, action delay, large armour
)
out = controller.update(target, 0.0, 0.0, 0.0, 0.0)
print(out.acceleration_yaw, out.acceleration_pitch, out.shoot_flag)
```

`update(params, yaw_pos, yaw_vel, pitch_pos, pitch_vel)` returns a
`ControlOutput` holding, for each axis, the reference position and velocity
at the current instant, the predicted position and velocity at the next step,
the commanded acceleration and the iteration count, plus the fire decision
and the solve time in milliseconds. The fire decision is only made for
`TargetParamsSpin`; for `TargetParams` it is always `False`.

Other entry points on `GimbalController`:

- `reference_goal(params)` returns `(pitch, yaw, distance)` for the current
  instant without solving.
- `reference_trajectory(params)` returns the yaw and pitch reference
  trajectories, each a `[2, horizon]` array of position and speed; yaw is kept
  continuous across the ±π seam.
- `shoot_flag(predicted_yaw, reference_yaw, params)` checks whether the
  predicted yaw at the action delay lies within the projected armour plate.

`AxisConfig` raises `ValueError` for a horizon of 1 or less and
`DimensionError` when a weight or bound vector has the wrong length. Invalid
target parameters (negative radii, non-positive projectile speed, negative
action delay) raise `ValueError`.

## What it does not do

The package is a library only. It has no command-line program, no closed-loop
simulation runner and no logging of runs to files; driving the axes and
feeding back their states is left to the caller.