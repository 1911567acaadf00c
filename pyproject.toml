[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gimbalmpc"
version = "0.1.0"
description = "Two-axis gimbal aiming controller built on a small ADMM model predictive control solver"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["mpc", "model predictive control", "admm", "gimbal", "ballistics", "robotics"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gimbalmpc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
