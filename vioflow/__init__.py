"""Data handling for visual-inertial odometry: CSV lines, measurements, loop timing, output files, filter settings, data servers and dataset readers."""

__version__ = "0.1.0"

__all__ = ["csvline", "measurements", "timing", "writer", "settings", "dataserver", "readers"]