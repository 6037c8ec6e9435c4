"""Timing of code sections within a processing loop."""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass
class LoopTimingData:
    """When a loop started, and the time spent on each labelled section."""

    loop_time_start: float = 0.0
    timings: dict[str, float] = field(default_factory=dict)


class LoopTimer:
    """Accumulates the time spent on labelled sections of each loop iteration.

    Call start_loop at the top of every iteration, bracket sections with
    start_timing and end_timing, and read the totals with timing_data.
    Times are in seconds; the loop start is measured from the timer's creation.
    """

    def __init__(self, labels: Iterable[str] = ()) -> None:
        self._origin = time.perf_counter()
        self._start_points: dict[str, float] = {}
        self._data = LoopTimingData()
        self.initialise(labels)

    def initialise(self, labels: Iterable[str]) -> None:
        """Set the labels that the timer records."""
        now = time.perf_counter()
        names = sorted(set(labels))
        self._start_points = {label: now for label in names}
        self._data = LoopTimingData(0.0, {label: 0.0 for label in names})

    def start_loop(self) -> None:
        """Reset every elapsed time to zero and every start point to now."""
        now = time.perf_counter()
        self._start_points = {label: now for label in self._start_points}
        self._data = LoopTimingData(now - self._origin, {label: 0.0 for label in self._start_points})

    def _check(self, label: str) -> None:
        if label not in self._start_points:
            raise KeyError(f"unknown timing label {label!r}")

    def start_timing(self, label: str) -> None:
        """Start timing the section with the given label."""
        self._check(label)
        self._start_points[label] = time.perf_counter()

    def end_timing(self, label: str) -> None:
        """Stop timing the section and add the elapsed time to its total."""
        self._check(label)
        now = time.perf_counter()
        self._data.timings[label] += now - self._start_points[label]

    def timing_data(self) -> LoopTimingData:
        """A copy of the current loop's timing data."""
        return LoopTimingData(self._data.loop_time_start, dict(self._data.timings))


loop_timer = LoopTimer()