"""Writing VIO output files into a directory."""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import IO, Any

from vioflow.csvline import CSVLine
from vioflow.measurements import VisionMeasurement
from vioflow.timing import LoopTimingData

_HEADERS = {
    "IMUState.csv": "time, px, py, pz, qw, qx, qy, qz, vx, vy, vz",
    "camera.csv": "time, px, py, pz, qw, qx, qy, qz",
    "bias.csv": "time, bias_gyr_x, bias_gyr_y, bias_gyr_z, bias_acc_x, bias_acc_y, bias_acc_z",
    "points.csv": "time, p1id, p1x, p1y, p1z, ...",
    "features.csv": "time, z1id, z1x, z1y, ...",
    "timing.csv": None,
}


def _format_stamp(stamp: float) -> str:
    return format(float(stamp), ".20g")


class VIOWriter:
    """Creates the output files in a directory and writes records to them."""

    def __init__(self, output_dir: str | PathLike[str]) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._files: dict[str, IO[str]] = {}
        try:
            for name, header in _HEADERS.items():
                handle = open(self.output_dir / name, "w", encoding="utf-8")
                self._files[name] = handle
                if header is not None:
                    handle.write(header + "\n")
        except OSError:
            self.close()
            raise
        self._timing_header_written = False

    def _write_record(self, name: str, stamp: float, line: CSVLine) -> None:
        self._files[name].write(f"{_format_stamp(stamp)}, {line}\n")

    def write_features(self, measurement: VisionMeasurement) -> None:
        """Write the stamp and (id, x, y) of every feature."""
        line = CSVLine()
        for feature_id in measurement.ids():
            line.push(feature_id, measurement.cam_coordinates[feature_id])
        self._write_record("features.csv", measurement.stamp, line)

    def write_timing(self, timing_data: LoopTimingData) -> None:
        """Write one loop's timings; the first call also writes the header."""
        labels = sorted(timing_data.timings)
        if not self._timing_header_written:
            self._files["timing.csv"].write(f"{CSVLine(['time', *labels])}\n")
            self._timing_header_written = True
        line = CSVLine().push(*(timing_data.timings[label] for label in labels))
        self._write_record("timing.csv", timing_data.loop_time_start, line)

    def close(self) -> None:
        """Flush and close every output file."""
        for handle in self._files.values():
            handle.close()

    def __enter__(self) -> "VIOWriter":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()