"""IMU and camera feature measurements."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from vioflow.csvline import CSVLine

#: The approximate value of acceleration due to gravity.
GRAVITY_CONSTANT = 9.80665


def _vector3(value: Any) -> np.ndarray:
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {arr.shape}")
    return arr.copy()


def _zeros3() -> np.ndarray:
    return np.zeros(3)


@dataclass(eq=False)
class IMUVelocity:
    """A gyroscope and accelerometer reading with a time stamp.

    The bias velocities are carried as well, although they are usually zero.
    """

    stamp: float = 0.0
    gyr: np.ndarray = field(default_factory=_zeros3)
    acc: np.ndarray = field(default_factory=_zeros3)
    gyr_bias_vel: np.ndarray = field(default_factory=_zeros3)
    acc_bias_vel: np.ndarray = field(default_factory=_zeros3)

    COMP_DIM = 12

    def __post_init__(self) -> None:
        self.stamp = float(self.stamp)
        self.gyr = _vector3(self.gyr)
        self.acc = _vector3(self.acc)
        self.gyr_bias_vel = _vector3(self.gyr_bias_vel)
        self.acc_bias_vel = _vector3(self.acc_bias_vel)

    @classmethod
    def zero(cls) -> "IMUVelocity":
        """An IMU velocity with every component zero."""
        return cls()

    @classmethod
    def from_vector(cls, vec: Iterable[float], stamp: float = 0.0) -> "IMUVelocity":
        """Build from (gyr, acc) or (gyr, acc, gyr bias vel, acc bias vel)."""
        arr = np.asarray(vec, dtype=float).reshape(-1)
        if arr.size == 6:
            return cls(stamp, arr[0:3], arr[3:6])
        if arr.size == 12:
            return cls(stamp, arr[0:3], arr[3:6], arr[6:9], arr[9:12])
        raise ValueError(f"an IMU velocity vector has 6 or 12 entries, not {arr.size}")

    def as_vector(self) -> np.ndarray:
        """The 12-vector (gyr, acc, gyr bias vel, acc bias vel)."""
        return np.concatenate([self.gyr, self.acc, self.gyr_bias_vel, self.acc_bias_vel])

    def __add__(self, other: Any) -> "IMUVelocity":
        if not isinstance(other, IMUVelocity):
            if isinstance(other, (str, bytes)):
                return NotImplemented
            try:
                other = IMUVelocity.from_vector(other)
            except TypeError:
                return NotImplemented
        stamp = self.stamp if self.stamp > 0 else other.stamp
        return IMUVelocity(
            stamp,
            self.gyr + other.gyr,
            self.acc + other.acc,
            self.gyr_bias_vel + other.gyr_bias_vel,
            self.acc_bias_vel + other.acc_bias_vel,
        )

    def __sub__(self, vec: Any) -> "IMUVelocity":
        if isinstance(vec, (IMUVelocity, str, bytes)):
            return NotImplemented
        arr = np.asarray(vec, dtype=float).reshape(-1)
        if arr.size == 12:
            return IMUVelocity(
                self.stamp,
                self.gyr - arr[0:3],
                self.acc - arr[3:6],
                self.gyr_bias_vel - arr[6:9],
                self.acc_bias_vel - arr[9:12],
            )
        if arr.size == 6:
            return IMUVelocity(
                self.stamp,
                self.gyr - arr[0:3],
                self.acc - arr[3:6],
                self.gyr_bias_vel,
                self.acc_bias_vel,
            )
        raise ValueError(f"can only subtract a vector of 6 or 12 entries, not {arr.size}")

    def __mul__(self, c: float) -> "IMUVelocity":
        if not isinstance(c, (int, float, np.number)):
            return NotImplemented
        return IMUVelocity(
            self.stamp,
            self.gyr * c,
            self.acc * c,
            self.gyr_bias_vel * c,
            self.acc_bias_vel * c,
        )

    __rmul__ = __mul__

    def write_csv(self, line: CSVLine) -> CSVLine:
        """Append stamp, gyr and acc to a CSV line."""
        return line.push(self.stamp, self.gyr, self.acc)

    @classmethod
    def read_csv(cls, line: CSVLine) -> "IMUVelocity":
        """Consume stamp, gyr and acc from the front of a CSV line."""
        stamp = line.pop_float()
        gyr = line.pop_vector(3)
        acc = line.pop_vector(3)
        return cls(stamp, gyr, acc)


def _coordinates(mapping: dict[int, Any]) -> dict[int, np.ndarray]:
    result: dict[int, np.ndarray] = {}
    for key in sorted(mapping):
        arr = np.asarray(mapping[key], dtype=float).reshape(-1)
        if arr.shape != (2,):
            raise ValueError(f"feature {key} must have 2 coordinates, got shape {arr.shape}")
        result[int(key)] = arr.copy()
    return result


@dataclass(eq=False)
class VisionMeasurement:
    """Feature coordinates from one image, keyed by feature id."""

    stamp: float = 0.0
    cam_coordinates: dict[int, np.ndarray] = field(default_factory=dict)
    camera: Any = None

    def __post_init__(self) -> None:
        self.stamp = float(self.stamp)
        self.cam_coordinates = _coordinates(self.cam_coordinates)

    def ids(self) -> list[int]:
        """The feature ids in ascending order."""
        return sorted(self.cam_coordinates)

    def as_vector(self) -> np.ndarray:
        """All feature coordinates stacked in ascending id order."""
        ids = self.ids()
        if not ids:
            return np.zeros(0)
        return np.concatenate([self.cam_coordinates[i] for i in ids])

    def point_coordinates(self) -> dict[int, tuple[float, float]]:
        """The feature coordinates as single-precision (x, y) pairs."""
        return {
            i: (float(np.float32(self.cam_coordinates[i][0])), float(np.float32(self.cam_coordinates[i][1])))
            for i in self.ids()
        }

    def __sub__(self, other: "VisionMeasurement") -> "VisionMeasurement":
        if not isinstance(other, VisionMeasurement):
            return NotImplemented
        if self.camera is not other.camera:
            raise ValueError("measurements from different cameras cannot be subtracted")
        diff = {
            i: z - other.cam_coordinates[i]
            for i, z in self.cam_coordinates.items()
            if i in other.cam_coordinates
        }
        return VisionMeasurement(self.stamp, diff, self.camera)

    def write_csv(self, line: CSVLine) -> CSVLine:
        """Append stamp, feature count and (id, x, y) for each feature."""
        line.push(self.stamp, len(self.cam_coordinates))
        for i in self.ids():
            line.push(i, self.cam_coordinates[i])
        return line

    @classmethod
    def read_csv(cls, line: CSVLine) -> "VisionMeasurement":
        """Consume a measurement written by write_csv from a CSV line."""
        stamp = line.pop_float()
        count = line.pop_int()
        coords: dict[int, np.ndarray] = {}
        for _ in range(count):
            feature_id = line.pop_int()
            coords[feature_id] = line.pop_vector(2)
        return cls(stamp, coords)