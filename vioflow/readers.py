"""Readers for the ASL (EuRoC), UZH-FPV and Hilti dataset layouts."""

from __future__ import annotations

from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from vioflow.csvline import CSVFile, CSVLine
from vioflow.dataserver import DatasetReader, StampedImage
from vioflow.measurements import IMUVelocity

UZHFPV_CALIBRATION = Path(
    "..",
    "indoor_forward_calib_snapdragon",
    "camchain-imucam-..indoor_forward_calib_snapdragon_imu.yaml",
)


@dataclass
class CameraModel:
    """Intrinsics of a camera: its model, image size, matrix and distortion."""

    model: str
    image_size: tuple[int, int]
    intrinsics: np.ndarray = field(default_factory=lambda: np.eye(3))
    distortion: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        if self.model not in ("standard", "equidistant"):
            raise ValueError(f"unknown camera model {self.model!r}")
        self.image_size = (int(self.image_size[0]), int(self.image_size[1]))
        matrix = np.asarray(self.intrinsics, dtype=float)
        if matrix.shape != (3, 3):
            raise ValueError(f"the camera matrix must be 3x3, got shape {matrix.shape}")
        self.intrinsics = matrix.copy()
        self.distortion = tuple(float(d) for d in self.distortion)


def _pinhole_matrix(fx: float, fy: float, cx: float, cy: float) -> np.ndarray:
    matrix = np.eye(3)
    matrix[0, 0] = fx
    matrix[1, 1] = fy
    matrix[0, 2] = cx
    matrix[1, 2] = cy
    return matrix


def _load_yaml(path: str | PathLike[str]) -> Any:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def _open_table(path: Path, delim: str) -> CSVFile:
    table = CSVFile(path, delim)
    table.skip_line()  # header
    return table


def _next_row(table: CSVFile) -> CSVLine | None:
    """The next line of the table that holds any data, or None at the end."""
    while table:
        line = table.next_line()
        if any(entry.strip() for entry in line):
            return line
    return None


def _quaternion_matrix(w: float, x: float, y: float, z: float) -> np.ndarray:
    q = np.array([w, x, y, z], dtype=float)
    norm = np.linalg.norm(q)
    if norm == 0.0:
        raise ValueError("a zero quaternion has no rotation")
    w, x, y, z = q / norm
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


class ASLDatasetReader(DatasetReader):
    """Reads a dataset in the ASL layout, with nanosecond time stamps."""

    def __init__(self, dataset_dir: str | PathLike[str], camera_lag: float = 0.0) -> None:
        self.dataset_dir = Path(dataset_dir)
        self.camera_lag = float(camera_lag)
        self.camera = None
        self.camera_extrinsics = None
        self.cam_dir = self.dataset_dir / "mav0" / "cam0"
        self._imu_file = _open_table(self.dataset_dir / "mav0" / "imu0" / "data.csv", ",")
        self._image_file = _open_table(self.cam_dir / "data.csv", ",")
        self.read_camera(self.cam_dir / "sensor.yaml")

    def next_imu(self) -> IMUVelocity | None:
        line = _next_row(self._imu_file)
        if line is None:
            return None
        imu = IMUVelocity.read_csv(line)
        imu.stamp *= 1e-9
        return imu

    def next_image(self) -> StampedImage | None:
        line = _next_row(self._image_file)
        if line is None:
            return None
        raw_stamp = line.pop_float()
        name = line.pop().strip()
        return StampedImage(1e-9 * raw_stamp - self.camera_lag, path=self.cam_dir / "data" / name)

    def read_camera(self, path: str | PathLike[str]) -> None:
        node = _load_yaml(path)
        width, height = node["resolution"][0], node["resolution"][1]
        fx, fy, cx, cy = (float(v) for v in node["intrinsics"][:4])
        self.camera = CameraModel(
            "standard",
            (width, height),
            _pinhole_matrix(fx, fy, cx, cy),
            tuple(node["distortion_coefficients"]),
        )
        entries = np.asarray(node["T_BS"]["data"], dtype=float).reshape(-1)
        if entries.size != 16:
            raise ValueError(f"T_BS must have 16 entries, got {entries.size}")
        self.camera_extrinsics = entries.reshape(4, 4)

    def close(self) -> None:
        """Close the data files."""
        self._imu_file.close()
        self._image_file.close()


class UZHFPVDatasetReader(DatasetReader):
    """Reads a dataset in the UZH-FPV layout, with space-separated files."""

    def __init__(self, dataset_dir: str | PathLike[str], camera_lag: float = 0.0) -> None:
        self.dataset_dir = Path(dataset_dir)
        self.camera_lag = float(camera_lag)
        self.camera = None
        self.camera_extrinsics = None
        camera_file = self.dataset_dir / UZHFPV_CALIBRATION
        if not camera_file.exists():
            raise FileNotFoundError(f"The camera file could not be found: {camera_file}")
        self._imu_file = _open_table(self.dataset_dir / "imu.txt", " ")
        self._image_file = _open_table(self.dataset_dir / "left_images.txt", " ")
        try:
            self.read_camera(camera_file)
        except Exception:
            self.close()
            raise

    def next_imu(self) -> IMUVelocity | None:
        line = _next_row(self._imu_file)
        if line is None:
            return None
        line.pop_int()
        return IMUVelocity.read_csv(line)

    def next_image(self) -> StampedImage | None:
        line = _next_row(self._image_file)
        if line is None:
            return None
        line.pop_int()
        raw_stamp = line.pop_float()
        name = line.pop().strip()
        return StampedImage(raw_stamp - self.camera_lag, path=self.dataset_dir / name)

    def read_camera(self, path: str | PathLike[str]) -> None:
        node = _load_yaml(path)["cam0"]
        width, height = node["resolution"][0], node["resolution"][1]
        fx, fy, cx, cy = (float(v) for v in node["intrinsics"][:4])
        distortion = tuple(node["distortion_coeffs"])
        if len(distortion) != 4:
            raise ValueError(f"distortion_coeffs must have 4 entries, got {len(distortion)}")
        self.camera = CameraModel(
            "equidistant", (width, height), _pinhole_matrix(fx, fy, cx, cy), distortion
        )
        rows = np.asarray(node["T_cam_imu"], dtype=float)
        if rows.shape != (4, 4):
            raise ValueError(f"T_cam_imu must be 4x4, got shape {rows.shape}")
        # The file gives the IMU pose w.r.t. the camera.
        self.camera_extrinsics = np.linalg.inv(rows)

    def close(self) -> None:
        """Close the data files."""
        self._imu_file.close()
        self._image_file.close()


def read_hilti_camera(path: str | PathLike[str]) -> tuple[CameraModel, np.ndarray]:
    """Read the camera model and camera pose w.r.t. the IMU from a Hilti calibration file."""
    camera_node = _load_yaml(path)["sensors"]["cam0"]

    params = camera_node["intrinsics"]["parameters"]
    image_size = (params["image_size"][0], params["image_size"][1])
    matrix = _pinhole_matrix(
        float(params["fx"]), float(params["fy"]), float(params["cx"]), float(params["cy"])
    )
    distortion = (params["k1"], params["k2"], params["k3"], params["k4"])
    camera = CameraModel("equidistant", image_size, matrix, distortion)

    extrinsic = camera_node["extrinsics"]
    qx, qy, qz, qw = (float(v) for v in extrinsic["quaternion"][:4])
    translation = np.asarray(extrinsic["translation"][:3], dtype=float)
    pose = np.eye(4)
    pose[:3, :3] = _quaternion_matrix(qw, qx, qy, qz)
    pose[:3, 3] = translation
    return camera, pose