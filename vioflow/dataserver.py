"""Serving IMU and image data from a dataset in time order."""

from __future__ import annotations

import math
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from os import PathLike
from typing import Any

import imageio.v3 as iio
import numpy as np

from vioflow.measurements import IMUVelocity


class MeasurementType(Enum):
    """The kind of the next measurement a data server will deliver."""

    NONE = "none"
    IMU = "imu"
    IMAGE = "image"


@dataclass
class StampedImage:
    """An image with its time stamp, held in memory or loaded from a path."""

    stamp: float
    image: np.ndarray | None = None
    path: str | PathLike[str] | None = None

    def load(self) -> np.ndarray:
        """Return the image, reading it from its path if not yet loaded."""
        if self.image is None:
            if self.path is None:
                raise ValueError("the image has neither pixel data nor a path")
            self.image = np.asarray(iio.imread(self.path))
        return self.image


class DatasetReader(ABC):
    """A source of IMU readings and images, each in time order."""

    camera: Any = None
    camera_extrinsics: np.ndarray | None = None
    camera_lag: float = 0.0

    @abstractmethod
    def next_imu(self) -> IMUVelocity | None:
        """The next IMU reading, or None when there are no more."""

    @abstractmethod
    def next_image(self) -> StampedImage | None:
        """The next image, or None when there are no more."""

    @abstractmethod
    def read_camera(self, path: str | PathLike[str]) -> None:
        """Read the camera model from a file."""


class DataServer(ABC):
    """Delivers measurements from a dataset reader in time order."""

    def __init__(self, reader: DatasetReader) -> None:
        self.reader = reader

    def read_camera(self, path: str | PathLike[str]) -> None:
        """Have the reader load its camera model from a file."""
        self.reader.read_camera(path)

    def camera(self) -> Any:
        """The reader's camera model."""
        return self.reader.camera

    def camera_extrinsics(self) -> np.ndarray | None:
        """The camera pose w.r.t. the IMU given by the dataset, if any."""
        return self.reader.camera_extrinsics

    @abstractmethod
    def next_measurement_type(self) -> MeasurementType:
        """The type of the next measurement; images come first on equal stamps."""

    @abstractmethod
    def get_image(self) -> StampedImage:
        """Remove and return the next image."""

    @abstractmethod
    def get_imu(self) -> IMUVelocity:
        """Remove and return the next IMU reading."""

    @abstractmethod
    def next_time(self) -> float:
        """The stamp of the next measurement, or NaN when there is none."""


def _order(image: StampedImage | None, imu: IMUVelocity | None) -> MeasurementType:
    if image is not None and imu is not None:
        return MeasurementType.IMAGE if image.stamp <= imu.stamp else MeasurementType.IMU
    if image is not None:
        return MeasurementType.IMAGE
    if imu is not None:
        return MeasurementType.IMU
    return MeasurementType.NONE


class SimpleDataServer(DataServer):
    """Reads one measurement ahead of each kind on the calling thread."""

    def __init__(self, reader: DatasetReader) -> None:
        super().__init__(reader)
        self._next_image = reader.next_image()
        self._next_imu = reader.next_imu()

    def next_measurement_type(self) -> MeasurementType:
        return _order(self._next_image, self._next_imu)

    def get_image(self) -> StampedImage:
        if self._next_image is None:
            raise LookupError("no more images")
        image = self._next_image
        self._next_image = self.reader.next_image()
        return image

    def get_imu(self) -> IMUVelocity:
        if self._next_imu is None:
            raise LookupError("no more IMU readings")
        imu = self._next_imu
        self._next_imu = self.reader.next_imu()
        return imu

    def next_time(self) -> float:
        kind = self.next_measurement_type()
        if kind is MeasurementType.IMAGE:
            return self._next_image.stamp
        if kind is MeasurementType.IMU:
            return self._next_imu.stamp
        return math.nan


class ThreadedDataServer(DataServer):
    """Reads ahead into bounded queues on a background thread."""

    def __init__(
        self, reader: DatasetReader, max_image_queue: int = 200, max_imu_queue: int = 1000
    ) -> None:
        super().__init__(reader)
        if max_image_queue < 1 or max_imu_queue < 1:
            raise ValueError("queue sizes must be at least 1")
        self._max_images = max_image_queue
        self._max_imu = max_imu_queue
        self._images: deque[StampedImage] = deque()
        self._imu: deque[IMUVelocity] = deque()
        self._images_done = False
        self._imu_done = False
        self._closed = False
        self._error: BaseException | None = None
        self._cond = threading.Condition()
        self._thread = threading.Thread(target=self._fill_queues, daemon=True)
        self._thread.start()

    def _wants_more(self) -> tuple[bool, bool]:
        want_image = not self._images_done and len(self._images) < self._max_images
        want_imu = not self._imu_done and len(self._imu) < self._max_imu
        return want_image, want_imu

    def _fill_queues(self) -> None:
        try:
            while True:
                with self._cond:
                    self._cond.wait_for(lambda: self._closed or any(self._wants_more()))
                    if self._closed:
                        return
                    want_image, want_imu = self._wants_more()
                image = self.reader.next_image() if want_image else None
                imu = self.reader.next_imu() if want_imu else None
                with self._cond:
                    if want_image:
                        if image is None:
                            self._images_done = True
                        else:
                            self._images.append(image)
                    if want_imu:
                        if imu is None:
                            self._imu_done = True
                        else:
                            self._imu.append(imu)
                    self._cond.notify_all()
                    if self._images_done and self._imu_done:
                        return
        except BaseException as exc:  # surfaced to the consumer
            with self._cond:
                self._error = exc
                self._images_done = True
                self._imu_done = True
                self._cond.notify_all()

    def _raise_error(self) -> None:
        if self._error is not None:
            raise RuntimeError("reading the dataset failed") from self._error

    def _ready(self) -> bool:
        return (self._imu_done or bool(self._imu)) and (self._images_done or bool(self._images))

    def _peek_type(self) -> MeasurementType:
        self._cond.wait_for(self._ready)
        self._raise_error()
        return _order(
            self._images[0] if self._images else None,
            self._imu[0] if self._imu else None,
        )

    def next_measurement_type(self) -> MeasurementType:
        with self._cond:
            return self._peek_type()

    def get_image(self) -> StampedImage:
        with self._cond:
            self._cond.wait_for(lambda: bool(self._images) or self._images_done)
            self._raise_error()
            if not self._images:
                raise LookupError("no more images")
            image = self._images.popleft()
            self._cond.notify_all()
            return image

    def get_imu(self) -> IMUVelocity:
        with self._cond:
            self._cond.wait_for(lambda: bool(self._imu) or self._imu_done)
            self._raise_error()
            if not self._imu:
                raise LookupError("no more IMU readings")
            imu = self._imu.popleft()
            self._cond.notify_all()
            return imu

    def next_time(self) -> float:
        with self._cond:
            kind = self._peek_type()
            if kind is MeasurementType.IMAGE:
                return self._images[0].stamp
            if kind is MeasurementType.IMU:
                return self._imu[0].stamp
            return math.nan

    def close(self) -> None:
        """Stop the reading thread and wait for it to finish."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._thread.join()

    def __enter__(self) -> "ThreadedDataServer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()