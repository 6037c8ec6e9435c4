# vioflow

Data handling for visual-inertial odometry (VIO) pipelines. The package reads
sensor datasets, serves IMU readings and images in time order, loads filter
settings from a parsed YAML mapping, and writes feature and timing records to
CSV files.

## Installation

```
pip install vioflow
```

To run the test suite:

```
pip install "vioflow[test]"
pytest
```

## Modules

- `vioflow.csvline`
  - `CSVLine`: a line of fields consumed from the front (`pop`, `pop_float`,
    `pop_int`, `pop_vector`) and extended at the back (`push`). Numbers are
    written with six significant digits; arrays are flattened in row-major
    order. `str(line)` joins the fields with `", "`.
  - `CSVReader`: iterates over a text stream, yielding one `CSVLine` per line.
  - `CSVFile`: opens a file for line-by-line reading with `next_line` and
    `skip_line`; it is true while lines remain, and works as a context manager.
- `vioflow.measurements`
  - `IMUVelocity`: time stamp, gyroscope and accelerometer 3-vectors, and
    gyroscope/accelerometer bias velocities. Supports `+`, subtraction of a 6-
    or 12-vector, scaling by a number, `as_vector`, `from_vector`, and CSV
    reading and writing as `stamp, gyr, acc`.
  - `VisionMeasurement`: feature coordinates keyed by integer id, with an
    optional `camera` object. `ids`, `as_vector` and `point_coordinates` list
    features in ascending id order; subtracting two measurements keeps the
    ids present in both and requires the same camera object.
  - `GRAVITY_CONSTANT`.
- `vioflow.timing`: `LoopTimer` accumulates the time spent on labelled
  sections of each loop iteration (`start_loop`, `start_timing`,
  `end_timing`, `timing_data`); `LoopTimingData` holds the result. A shared
  instance is available as `loop_timer`.
- `vioflow.writer`: `VIOWriter` creates an output directory holding
  `IMUState.csv`, `camera.csv`, `bias.csv`, `points.csv`, `features.csv` and
  `timing.csv`, writes the header lines, and records features
  (`write_features`) and loop timings (`write_timing`). It is a context
  manager.
- `vioflow.settings`: `FilterSettings.from_config` builds filter settings from
  a nested mapping (for example the `eqf` section of a YAML file). Absent keys
  keep their defaults; `settings:coordinateChoice` must be one of `Euclidean`,
  `InvDepth` or `Normal` (`CoordinateChoice`), otherwise `ValueError` is
  raised. `coordinate_selection` reads that choice on its own.
- `vioflow.dataserver`: `DatasetReader` is the interface of a data source.
  `SimpleDataServer` reads ahead on the calling thread; `ThreadedDataServer`
  reads ahead into bounded queues on a background thread and must be closed
  (or used in a `with` block). Both deliver the next measurement in time
  order, images first on equal stamps, and report `MeasurementType.NONE` and
  a NaN `next_time` at the end of the data. `StampedImage.load` reads an
  image from its path on demand.
- `vioflow.readers`: `ASLDatasetReader` (ASL/EuRoC layout, nanosecond stamps),
  `UZHFPVDatasetReader` (UZH-FPV layout, space-separated files) and
  `read_hilti_camera` (Hilti calibration file). Camera intrinsics are returned
  as `CameraModel`; camera extrinsics as a 4x4 homogeneous matrix.

## Example

```python
from vioflow.readers import ASLDatasetReader
from vioflow.dataserver import SimpleDataServer, MeasurementType

server = SimpleDataServer(ASLDatasetReader("/data/MH_01_easy/"))
while (kind := server.next_measurement_type()) is not MeasurementType.NONE:
    if kind is MeasurementType.IMU:
        imu = server.get_imu()
        print(imu.stamp, imu.gyr, imu.acc)
    else:
        image = server.get_image()
        print(image.stamp, image.path)
```

Reading filter settings:

```python
import yaml
from vioflow.settings import FilterSettings

with open("config.yaml") as f:
    settings = FilterSettings.from_config(yaml.safe_load(f)["eqf"])
print(settings.coordinate_choice)
```

## What this package does not do

- It contains no state estimator: `FilterSettings` only holds configuration,
  and nothing here consumes it to run a filter.
- It has no feature tracker, and `CameraModel` only stores intrinsics and
  distortion coefficients; it does not project or undistort points.
- `VIOWriter` writes headers to the state, camera, bias and points files but
  has no method that writes state records into them.
- There is no command-line program and no live display; the package is a
  library to be used from your own code.