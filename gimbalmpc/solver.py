"""ADMM-based model predictive control solver for linear time-invariant systems."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

DEFAULT_ABS_PRI_TOL = 1e-3
DEFAULT_ABS_DUA_TOL = 1e-3
DEFAULT_MAX_ITER = 10
DEFAULT_CHECK_TERMINATION = 1
DEFAULT_EN_STATE_BOUND = True
DEFAULT_EN_INPUT_BOUND = True

_RICCATI_MAX_ITER = 1000
_RICCATI_TOL = 1e-5


class DimensionError(ValueError):
    """Raised when a matrix or vector has the wrong shape for the problem."""


@dataclass
class SolverSettings:
    """User-tunable solver settings."""

    abs_pri_tol: float = DEFAULT_ABS_PRI_TOL
    abs_dua_tol: float = DEFAULT_ABS_DUA_TOL
    max_iter: int = DEFAULT_MAX_ITER
    check_termination: int = DEFAULT_CHECK_TERMINATION
    en_state_bound: bool = DEFAULT_EN_STATE_BOUND
    en_input_bound: bool = DEFAULT_EN_INPUT_BOUND


@dataclass
class Solution:
    """Result of a solve: state trajectory ``x`` [nx, N] and inputs ``u`` [nu, N-1]."""

    iterations: int = 0
    solved: bool = False
    x: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    u: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))


def _matrix(value) -> np.ndarray:
    return np.array(value, dtype=float, ndmin=2)


def _check_dimension(name: str, what: str, actual: int, expected: int) -> None:
    if actual != expected:
        raise DimensionError(f"{name} has {actual} {what}. Expected {expected}.")


def _format_matrix(matrix: np.ndarray) -> str:
    cells = [[f"{value:.4g}" for value in row] for row in np.atleast_2d(matrix)]
    width = max((len(cell) for row in cells for cell in row), default=0)
    return "\n".join("[" + ", ".join(cell.rjust(width) for cell in row) + "]" for row in cells)


class TinyMpcSolver:
    """Tiny MPC solver using ADMM with a cached infinite-horizon LQR backbone.

    The workspace persists between calls to :meth:`solve`, so each solve is
    warm-started from the previous one.
    """

    def __init__(self, adyn, bdyn, q, r, x_min, x_max, u_min, u_max, nx, nu, horizon, rho,
                 verbose=False):
        adyn, bdyn, q, r = (_matrix(m) for m in (adyn, bdyn, q, r))
        x_min, x_max, u_min, u_max = (_matrix(m) for m in (x_min, x_max, u_min, u_max))
        n = horizon
        checks = (
            ("State transition matrix (A)", "rows", adyn.shape[0], nx),
            ("State transition matrix (A)", "columns", adyn.shape[1], nx),
            ("Input matrix (B)", "rows", bdyn.shape[0], nx),
            ("Input matrix (B)", "columns", bdyn.shape[1], nu),
            ("State stage cost (Q)", "rows", q.shape[0], nx),
            ("State stage cost (Q)", "columns", q.shape[1], nx),
            ("Input stage cost (R)", "rows", r.shape[0], nu),
            ("Input stage cost (R)", "columns", r.shape[1], nu),
            ("Lower state bounds (xMin)", "rows", x_min.shape[0], nx),
            ("Lower state bounds (xMin)", "cols", x_min.shape[1], n),
            ("Upper state bounds (xMax)", "rows", x_max.shape[0], nx),
            ("Upper state bounds (xMax)", "cols", x_max.shape[1], n),
            ("Lower input bounds (uMin)", "rows", u_min.shape[0], nu),
            ("Lower input bounds (uMin)", "cols", u_min.shape[1], n - 1),
            ("Upper input bounds (uMax)", "rows", u_max.shape[0], nu),
            ("Upper input bounds (uMax)", "cols", u_max.shape[1], n - 1),
        )
        for check in checks:
            _check_dimension(*check)

        self.settings = SolverSettings()
        self._solution = Solution(x=np.zeros((nx, n)), u=np.zeros((nu, n - 1)))

        self.nx, self.nu, self.horizon = nx, nu, n

        self._x = np.zeros((nx, n))
        self._u = np.zeros((nu, n - 1))
        self._q = np.zeros((nx, n))
        self._r = np.zeros((nu, n - 1))
        self._p = np.zeros((nx, n))
        self._d = np.zeros((nu, n - 1))
        self._v = np.zeros((nx, n))
        self._vnew = np.zeros((nx, n))
        self._z = np.zeros((nu, n - 1))
        self._znew = np.zeros((nu, n - 1))
        self._g = np.zeros((nx, n))
        self._y = np.zeros((nu, n - 1))

        self._q_weights = np.diag(q + rho * np.eye(nx)).copy()
        self._r_weights = np.diag(r + rho * np.eye(nu)).copy()
        self._adyn = adyn
        self._bdyn = bdyn
        self._x_min, self._x_max = x_min, x_max
        self._u_min, self._u_max = u_min, u_max
        self._x_ref = np.zeros((nx, n))
        self._u_ref = np.zeros((nu, n - 1))

        self.primal_residual_state = 0.0
        self.primal_residual_input = 0.0
        self.dual_residual_state = 0.0
        self.dual_residual_input = 0.0
        self.status = 0
        self.iterations = 0

        self._precompute_cache(np.diag(self._q_weights), np.diag(self._r_weights), rho, verbose)

    def update_settings(self, abs_pri_tol, abs_dua_tol, max_iter, check_termination,
                        en_state_bound, en_input_bound):
        """Replace all solver settings."""
        self.settings = SolverSettings(abs_pri_tol, abs_dua_tol, max_iter, check_termination,
                                       en_state_bound, en_input_bound)

    def set_initial_state(self, x0):
        """Set the current state as the first column of the state trajectory."""
        x0 = np.asarray(x0, dtype=float).reshape(-1)
        if x0.size != self.nx:
            raise DimensionError("Initial state x0 has incorrect dimension.")
        self._x[:, 0] = x0

    def set_state_reference(self, x_ref):
        """Set the state reference trajectory [nx, N]."""
        x_ref = _matrix(x_ref)
        _check_dimension("State reference trajectory (xRef)", "rows", x_ref.shape[0], self.nx)
        _check_dimension("State reference trajectory (xRef)", "columns", x_ref.shape[1], self.horizon)
        self._x_ref = x_ref

    def set_input_reference(self, u_ref):
        """Set the input reference trajectory [nu, N-1]."""
        u_ref = _matrix(u_ref)
        _check_dimension("Input reference trajectory (uRef)", "rows", u_ref.shape[0], self.nu)
        _check_dimension("Input reference trajectory (uRef)", "columns", u_ref.shape[1],
                         self.horizon - 1)
        self._u_ref = u_ref

    def solve(self) -> bool:
        """Run ADMM iterations; return True if the tolerances were met."""
        self.status = 11
        self.iterations = 0

        self._update_linear_cost()
        self._backward_pass_grad()

        for _ in range(self.settings.max_iter):
            self._forward_pass()
            self._update_slack()
            self._update_dual()
            self._update_linear_cost()
            self.iterations += 1

            if self._terminated():
                self.status = 1
                self._store_solution(solved=True)
                return True

            self._v = self._vnew.copy()
            self._z = self._znew.copy()
            self._backward_pass_grad()

        self._store_solution(solved=False)
        return False

    @property
    def solution(self) -> Solution:
        """The result of the most recent solve."""
        return self._solution

    def _store_solution(self, solved: bool) -> None:
        self._solution = Solution(iterations=self.iterations, solved=solved,
                                  x=self._vnew.copy(), u=self._znew.copy())

    def _precompute_cache(self, q, r, rho, verbose):
        adyn, bdyn = self._adyn, self._bdyn
        q1 = q + rho * np.eye(self.nx)
        r1 = r + rho * np.eye(self.nu)

        if verbose:
            print(f"A = {_format_matrix(adyn)}")
            print(f"B = {_format_matrix(bdyn)}")
            print(f"Q_rho = {_format_matrix(q1)}")
            print(f"R_rho = {_format_matrix(r1)}")
            print(f"rho = {rho:g}")

        k_prev = np.zeros((self.nu, self.nx))
        p_prev = rho * np.eye(self.nx)
        k_inf = np.zeros((self.nu, self.nx))
        p_inf = np.zeros((self.nx, self.nx))

        for i in range(_RICCATI_MAX_ITER):
            k_inf = np.linalg.inv(r1 + bdyn.T @ p_prev @ bdyn) @ bdyn.T @ p_prev @ adyn
            p_inf = q1 + adyn.T @ p_prev @ (adyn - bdyn @ k_inf)
            if np.max(np.abs(k_inf - k_prev)) < _RICCATI_TOL:
                if verbose:
                    print(f"Kinf converged after {i + 1} iterations")
                break
            k_prev, p_prev = k_inf, p_inf

        self._rho = rho
        self._k_inf = k_inf
        self._p_inf = p_inf
        self._quu_inv = np.linalg.inv(r1 + bdyn.T @ p_inf @ bdyn)
        self._am_bkt = (adyn - bdyn @ k_inf).T

        if verbose:
            print(f"Kinf = {_format_matrix(self._k_inf)}")
            print(f"Pinf = {_format_matrix(self._p_inf)}")
            print(f"Quu_inv = {_format_matrix(self._quu_inv)}")
            print(f"AmBKt = {_format_matrix(self._am_bkt)}")
            print("\nPrecomputation finished!\n")

    def _backward_pass_grad(self):
        bt = self._bdyn.T
        kt = self._k_inf.T
        for i in reversed(range(self.horizon - 1)):
            p_next = self._p[:, i + 1]
            self._d[:, i] = self._quu_inv @ (bt @ p_next + self._r[:, i])
            self._p[:, i] = self._q[:, i] + self._am_bkt @ p_next - kt @ self._r[:, i]

    def _forward_pass(self):
        for i in range(self.horizon - 1):
            self._u[:, i] = -self._k_inf @ self._x[:, i] - self._d[:, i]
            self._x[:, i + 1] = self._adyn @ self._x[:, i] + self._bdyn @ self._u[:, i]

    def _update_slack(self):
        self._znew = self._u + self._y
        self._vnew = self._x + self._g
        if self.settings.en_input_bound:
            self._znew = np.minimum(self._u_max, np.maximum(self._u_min, self._znew))
        if self.settings.en_state_bound:
            self._vnew = np.minimum(self._x_max, np.maximum(self._x_min, self._vnew))

    def _update_dual(self):
        self._y = self._y + self._u - self._znew
        self._g = self._g + self._x - self._vnew

    def _update_linear_cost(self):
        rho = self._rho
        self._r = -(self._u_ref * self._r_weights[:, None]) - rho * (self._znew - self._y)
        self._q = -(self._x_ref * self._q_weights[:, None]) - rho * (self._vnew - self._g)
        last = self.horizon - 1
        self._p[:, last] = (-self._p_inf @ self._x_ref[:, last]
                            - rho * (self._vnew[:, last] - self._g[:, last]))

    def _terminated(self) -> bool:
        if self.iterations % self.settings.check_termination != 0:
            return False
        rho = self._rho
        self.primal_residual_state = float(np.max(np.abs(self._x - self._vnew)))
        self.dual_residual_state = float(np.max(np.abs(self._v - self._vnew))) * rho
        self.primal_residual_input = float(np.max(np.abs(self._u - self._znew)))
        self.dual_residual_input = float(np.max(np.abs(self._z - self._znew))) * rho
        pri, dua = self.settings.abs_pri_tol, self.settings.abs_dua_tol
        return (self.primal_residual_state < pri and self.primal_residual_input < pri
                and self.dual_residual_state < dua and self.dual_residual_input < dua)