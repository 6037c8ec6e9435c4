import math

import imageio.v3 as iio
import numpy as np
import pytest

from vioflow.dataserver import (
    DatasetReader,
    MeasurementType,
    SimpleDataServer,
    StampedImage,
    ThreadedDataServer,
)
from vioflow.measurements import IMUVelocity


class ListReader(DatasetReader):
    def __init__(self, image_stamps, imu_stamps, fail_after=None):
        self._images = iter([StampedImage(s) for s in image_stamps])
        self._imu = iter([IMUVelocity(stamp=s) for s in imu_stamps])
        self._reads = 0
        self._fail_after = fail_after
        self.camera = "camera-model"
        self.camera_extrinsics = np.eye(4)
        self.camera_paths = []

    def next_imu(self):
        self._reads += 1
        if self._fail_after is not None and self._reads > self._fail_after:
            raise OSError("broken file")
        return next(self._imu, None)

    def next_image(self):
        return next(self._images, None)

    def read_camera(self, path):
        self.camera_paths.append(path)


IMAGE_STAMPS = [0.05, 0.1, 0.2, 0.3]
IMU_STAMPS = [0.0, 0.05, 0.1, 0.15, 0.2, 0.25, 0.3, 0.35]


def drain(server):
    result = []
    while True:
        kind = server.next_measurement_type()
        if kind is MeasurementType.NONE:
            return result
        stamp = server.next_time()
        item = server.get_image() if kind is MeasurementType.IMAGE else server.get_imu()
        assert item.stamp == stamp
        result.append((kind, item.stamp))


def test_simple_server_delivers_in_time_order():
    server = SimpleDataServer(ListReader(IMAGE_STAMPS, IMU_STAMPS))
    out = drain(server)
    assert len(out) == len(IMAGE_STAMPS) + len(IMU_STAMPS)
    stamps = [s for _, s in out]
    assert stamps == sorted(stamps)


def test_image_comes_first_on_equal_stamps():
    server = SimpleDataServer(ListReader([1.0], [1.0]))
    assert server.next_measurement_type() is MeasurementType.IMAGE
    server.get_image()
    assert server.next_measurement_type() is MeasurementType.IMU


def test_simple_server_empty_gives_none_and_nan():
    server = SimpleDataServer(ListReader([], []))
    assert server.next_measurement_type() is MeasurementType.NONE
    assert math.isnan(server.next_time())
    with pytest.raises(LookupError):
        server.get_image()
    with pytest.raises(LookupError):
        server.get_imu()


def test_server_delegates_camera_to_reader():
    reader = ListReader([], [])
    server = SimpleDataServer(reader)
    server.read_camera("cam.yaml")
    assert reader.camera_paths == ["cam.yaml"]
    assert server.camera() == "camera-model"
    assert np.array_equal(server.camera_extrinsics(), np.eye(4))


@pytest.mark.parametrize("sizes", [(1, 1), (2, 3), (200, 1000)])
def test_threaded_server_matches_simple_server(sizes):
    expected = drain(SimpleDataServer(ListReader(IMAGE_STAMPS, IMU_STAMPS)))
    with ThreadedDataServer(ListReader(IMAGE_STAMPS, IMU_STAMPS), *sizes) as server:
        assert drain(server) == expected
        assert math.isnan(server.next_time())


def test_threaded_server_exhausted_raises():
    with ThreadedDataServer(ListReader([0.5], [])) as server:
        assert server.get_image().stamp == 0.5
        with pytest.raises(LookupError):
            server.get_image()
        with pytest.raises(LookupError):
            server.get_imu()


def test_threaded_server_reports_reader_errors():
    with ThreadedDataServer(ListReader([], IMU_STAMPS, fail_after=2), 1, 1) as server:
        with pytest.raises(RuntimeError) as info:
            drain(server)
        assert isinstance(info.value.__cause__, OSError)


def test_threaded_server_close_stops_early():
    server = ThreadedDataServer(ListReader(IMAGE_STAMPS, IMU_STAMPS), 1, 1)
    assert server.next_measurement_type() is MeasurementType.IMU
    server.close()
    assert not server._thread.is_alive()


def test_invalid_queue_size_raises():
    with pytest.raises(ValueError):
        ThreadedDataServer(ListReader([], []), 0, 1)


def test_stamped_image_load_reads_file(tmp_path):
    pixels = np.arange(12, dtype=np.uint8).reshape(3, 4)
    path = tmp_path / "frame.png"
    iio.imwrite(path, pixels)
    image = StampedImage(1.5, path=path)
    loaded = image.load()
    assert np.array_equal(loaded, pixels)
    assert image.load() is loaded


def test_stamped_image_without_data_raises():
    with pytest.raises(ValueError):
        StampedImage(0.0).load()