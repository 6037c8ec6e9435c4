"""Settings of the equivariant filter, read from a nested configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

import numpy as np


class CoordinateChoice(Enum):
    """The local coordinate charts available to the filter."""

    EUCLIDEAN = "Euclidean"
    INV_DEPTH = "InvDepth"
    NORMAL = "Normal"


_MISSING = object()

_TRUE_WORDS = {"true", "yes", "on", "y"}
_FALSE_WORDS = {"false", "no", "off", "n"}


def _lookup(config: Any, path: str) -> Any:
    """Follow a colon-separated key path through nested mappings."""
    node = config
    for key in path.split(":"):
        if not isinstance(node, Mapping) or key not in node:
            return _MISSING
        node = node[key]
    return _MISSING if node is None else node


def _as_float(value: Any, path: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"setting {path!r} must be a number, not a boolean")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"setting {path!r} must be a number, got {value!r}") from None


def _as_bool(value: Any, path: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"setting {path!r} must be a boolean, got {value!r}")


def _as_pose(value: Any, path: str) -> np.ndarray:
    try:
        arr = np.asarray(value, dtype=float)
    except (TypeError, ValueError):
        raise ValueError(f"setting {path!r} must be a 4x4 matrix") from None
    if arr.size != 16:
        raise ValueError(f"setting {path!r} must be a 4x4 matrix, got {arr.size} entries")
    pose = arr.reshape(4, 4)
    if not np.allclose(pose[3], [0.0, 0.0, 0.0, 1.0]):
        raise ValueError(f"setting {path!r} must have a last row of (0, 0, 0, 1)")
    return pose.copy()


def coordinate_selection(config: Any) -> CoordinateChoice:
    """Choose the filter coordinates from ``settings:coordinateChoice``."""
    value = _lookup(config, "settings:coordinateChoice")
    choice = "" if value is _MISSING else str(value)
    try:
        return CoordinateChoice(choice)
    except ValueError:
        raise ValueError(
            "Invalid coordinate choice. Valid choices are Euclidean, InvDepth, Normal."
        ) from None


_CONFIG_PATHS = {
    "bias_omega_process_variance": "processVariance:biasGyr",
    "bias_accel_process_variance": "processVariance:biasAcc",
    "attitude_process_variance": "processVariance:attitude",
    "position_process_variance": "processVariance:position",
    "velocity_process_variance": "processVariance:velocity",
    "point_process_variance": "processVariance:point",
    "camera_attitude_process_variance": "processVariance:cameraAttitude",
    "camera_position_process_variance": "processVariance:cameraPosition",
    "measurement_noise": "measurementNoise:feature",
    "outlier_threshold_abs": "measurementNoise:featureOutlierAbs",
    "outlier_threshold_prob": "measurementNoise:featureOutlierProb",
    "feature_retention": "measurementNoise:featureRetention",
    "vel_gyr_noise": "velocityNoise:gyr",
    "vel_acc_noise": "velocityNoise:acc",
    "vel_gyr_bias_walk": "velocityNoise:gyrBias",
    "vel_acc_bias_walk": "velocityNoise:accBias",
    "initial_attitude_variance": "initialVariance:attitude",
    "initial_position_variance": "initialVariance:position",
    "initial_velocity_variance": "initialVariance:velocity",
    "initial_point_variance": "initialVariance:point",
    "initial_bias_omega_variance": "initialVariance:biasGyr",
    "initial_bias_accel_variance": "initialVariance:biasAcc",
    "initial_camera_attitude_variance": "initialVariance:cameraAttitude",
    "initial_camera_position_variance": "initialVariance:cameraPosition",
    "use_discrete_innovation_lift": "settings:useDiscreteInnovationLift",
    "use_discrete_velocity_lift": "settings:useDiscreteVelocityLift",
    "fast_riccati": "settings:fastRiccati",
    "use_median_depth": "settings:useMedianDepth",
    "use_feature_predictions": "settings:useFeaturePredictions",
    "use_equivariant_output": "settings:useEquivariantOutput",
    "initial_scene_depth": "initialValue:sceneDepth",
}

_CAMERA_OFFSET_PATH = "initialValue:cameraOffset"


@dataclass
class FilterSettings:
    """Noise, initial variance and implementation settings of the filter."""

    bias_omega_process_variance: float = 0.001
    bias_accel_process_variance: float = 0.001
    attitude_process_variance: float = 0.001
    position_process_variance: float = 0.001
    velocity_process_variance: float = 0.001
    camera_attitude_process_variance: float = 0.001
    camera_position_process_variance: float = 0.001
    point_process_variance: float = 0.001

    vel_gyr_noise: float = 0.1
    vel_acc_noise: float = 0.1
    vel_gyr_bias_walk: float = 0.001
    vel_acc_bias_walk: float = 0.001

    measurement_noise: float = 0.1
    outlier_threshold_abs: float = 1e8
    outlier_threshold_prob: float = 1e8
    feature_retention: float = 0.3

    initial_attitude_variance: float = 1.0
    initial_position_variance: float = 1.0
    initial_velocity_variance: float = 1.0
    initial_camera_attitude_variance: float = 0.1
    initial_camera_position_variance: float = 0.1
    initial_point_variance: float = 1.0
    initial_bias_omega_variance: float = 1.0
    initial_bias_accel_variance: float = 1.0
    initial_scene_depth: float = 1.0

    use_discrete_innovation_lift: bool = True
    use_discrete_velocity_lift: bool = True
    fast_riccati: bool = False
    use_median_depth: bool = True
    use_feature_predictions: bool = False
    use_equivariant_output: bool = True
    coordinate_choice: CoordinateChoice = CoordinateChoice.EUCLIDEAN
    #: Pose of the camera with respect to the IMU as a homogeneous 4x4 matrix.
    camera_offset: np.ndarray = field(default_factory=lambda: np.eye(4))

    @classmethod
    def from_config(cls, config: Any) -> "FilterSettings":
        """Build settings from a nested mapping such as a parsed YAML node.

        Keys that are absent keep their defaults; the coordinate choice
        must be given.
        """
        defaults = cls()
        values: dict[str, Any] = {}
        for f in fields(cls):
            path = _CONFIG_PATHS.get(f.name)
            if path is None:
                continue
            raw = _lookup(config, path)
            if raw is _MISSING:
                continue
            if isinstance(getattr(defaults, f.name), bool):
                values[f.name] = _as_bool(raw, path)
            else:
                values[f.name] = _as_float(raw, path)

        values["coordinate_choice"] = coordinate_selection(config)

        raw_offset = _lookup(config, _CAMERA_OFFSET_PATH)
        if raw_offset is not _MISSING:
            values["camera_offset"] = _as_pose(raw_offset, _CAMERA_OFFSET_PATH)
        return cls(**values)