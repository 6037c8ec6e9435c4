import numpy as np
import pytest

from vioflow.csvline import CSVLine
from vioflow.measurements import VisionMeasurement
from vioflow.timing import LoopTimingData
from vioflow.writer import VIOWriter


def _lines(path):
    return path.read_text(encoding="utf-8").splitlines()


def test_creates_directory_and_headers(tmp_path):
    out = tmp_path / "nested" / "run"
    with VIOWriter(out):
        pass
    assert out.is_dir()
    assert _lines(out / "IMUState.csv") == ["time, px, py, pz, qw, qx, qy, qz, vx, vy, vz"]
    assert _lines(out / "camera.csv") == ["time, px, py, pz, qw, qx, qy, qz"]
    assert _lines(out / "features.csv") == ["time, z1id, z1x, z1y, ..."]
    assert _lines(out / "points.csv") == ["time, p1id, p1x, p1y, p1z, ..."]
    assert (out / "bias.csv").exists()
    assert _lines(out / "timing.csv") == []


def test_existing_directory_is_reused(tmp_path):
    with VIOWriter(tmp_path):
        pass
    with VIOWriter(str(tmp_path) + "/") as writer:
        assert writer.output_dir == tmp_path
    assert _lines(tmp_path / "features.csv") == ["time, z1id, z1x, z1y, ..."]


def test_write_features_round_trip(tmp_path):
    stamp = 1370925.32417695
    y = VisionMeasurement(stamp, {4: [12.5, -3.25], 1: [0.5, 640.0]})
    with VIOWriter(tmp_path) as writer:
        writer.write_features(y)
    rows = _lines(tmp_path / "features.csv")
    assert len(rows) == 2
    line = CSVLine.from_text(rows[1], ",")
    assert line.pop_float() == stamp
    ids = []
    for _ in y.ids():
        feature_id = line.pop_int()
        ids.append(feature_id)
        np.testing.assert_allclose(line.pop_vector(2), y.cam_coordinates[feature_id])
    assert ids == y.ids()
    assert len(line) == 0


def test_write_features_empty(tmp_path):
    with VIOWriter(tmp_path) as writer:
        writer.write_features(VisionMeasurement(2.5, {}))
    assert _lines(tmp_path / "features.csv")[1] == "2.5, "


def test_write_timing_header_once(tmp_path):
    first = LoopTimingData(1.5, {"beta": 0.25, "alpha": 0.5})
    second = LoopTimingData(3.0, {"beta": 0.125, "alpha": 1.0})
    with VIOWriter(tmp_path) as writer:
        writer.write_timing(first)
        writer.write_timing(second)
    rows = _lines(tmp_path / "timing.csv")
    assert rows[0] == "time, alpha, beta"
    assert len(rows) == 3
    for row, data in zip(rows[1:], (first, second)):
        line = CSVLine.from_text(row, ",")
        assert line.pop_float() == data.loop_time_start
        assert line.pop_float() == pytest.approx(data.timings["alpha"])
        assert line.pop_float() == pytest.approx(data.timings["beta"])


def test_close_closes_files(tmp_path):
    writer = VIOWriter(tmp_path)
    writer.close()
    with pytest.raises(ValueError):
        writer.write_features(VisionMeasurement(1.0, {}))