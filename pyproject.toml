[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vioflow"
version = "0.1.0"
description = "Data handling for visual-inertial odometry: CSV measurement I/O, dataset readers, time-ordered data servers, filter settings and output files."
requires-python = ">=3.10"
keywords = ["visual-inertial odometry", "vio", "imu", "dataset", "robotics", "csv"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Recognition",
]
dependencies = [
    "numpy",
    "pyyaml",
    "imageio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["vioflow"]

[tool.pytest.ini_options]
addopts = "-ra"
