"""Two-axis gimbal aiming controller built on a small ADMM model predictive control solver."""

__version__ = "0.1.0"
__all__ = ["controller", "solver", "targets"]