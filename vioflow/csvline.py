"""Reading and writing lines of delimiter-separated values."""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Iterable, Iterator
from numbers import Integral, Real
from os import PathLike
from typing import IO, Any

import numpy as np

_INT_PREFIX = re.compile(r"[+-]?\d+")


def _format_number(value: Any) -> str:
    """Format a number the way a default-precision text stream does."""
    if isinstance(value, (bool, np.bool_)):
        return "1" if value else "0"
    if isinstance(value, (Integral, np.integer)):
        return str(int(value))
    return format(float(value), ".6g")


class CSVLine:
    """A line of separated values, consumed from the front and extended at the back."""

    def __init__(self, fields: Iterable[str] = ()) -> None:
        self._fields: deque[str] = deque(str(f) for f in fields)

    @classmethod
    def from_text(cls, text: str, delim: str = ",") -> "CSVLine":
        """Split one line of text on the delimiter.

        A trailing empty field (text ending in the delimiter) is not kept,
        and empty text gives an empty line.
        """
        parts = text.split(delim)
        if parts and parts[-1] == "":
            parts.pop()
        return cls(parts)

    def pop(self) -> str:
        """Remove and return the first field as text."""
        if not self._fields:
            raise IndexError("no fields left in the line")
        return self._fields.popleft()

    def pop_float(self) -> float:
        """Remove the first field and parse it as a float."""
        field = self.pop()
        try:
            return float(field.strip())
        except ValueError:
            raise ValueError(f"field {field!r} is not a number") from None

    def pop_int(self) -> int:
        """Remove the first field and parse its leading integer."""
        field = self.pop()
        match = _INT_PREFIX.match(field.strip())
        if match is None:
            raise ValueError(f"field {field!r} is not an integer")
        return int(match.group())

    def pop_vector(self, n: int) -> np.ndarray:
        """Remove the next ``n`` fields and return them as a float vector."""
        if n > len(self._fields):
            raise IndexError(f"requested {n} fields but only {len(self._fields)} remain")
        return np.array([self.pop_float() for _ in range(n)], dtype=float)

    def push(self, *args: Any) -> "CSVLine":
        """Append values to the back of the line.

        Strings are kept as they are, numbers are formatted with six
        significant digits, and arrays or other iterables are flattened in
        row-major order.
        """
        for value in args:
            if isinstance(value, str):
                self._fields.append(value)
            elif isinstance(value, np.ndarray):
                self._fields.extend(_format_number(v) for v in value.ravel(order="C"))
            elif isinstance(value, (Real, np.number, np.bool_)):
                self._fields.append(_format_number(value))
            elif isinstance(value, Iterable):
                self.push(*value)
            else:
                raise TypeError(f"cannot write {type(value).__name__} to a CSV line")
        return self

    def __len__(self) -> int:
        return len(self._fields)

    def __getitem__(self, index: int) -> str:
        return self._fields[index]

    def __str__(self) -> str:
        return ", ".join(self._fields)

    def __repr__(self) -> str:
        return f"CSVLine({list(self._fields)!r})"


class CSVReader:
    """Iterate over the lines of a text stream as CSVLine objects."""

    def __init__(self, stream: IO[str], delim: str = ",") -> None:
        self._stream = stream
        self._delim = delim

    def __iter__(self) -> Iterator[CSVLine]:
        for raw in self._stream:
            if raw.endswith("\n"):
                raw = raw[:-1]
            yield CSVLine.from_text(raw, self._delim)


class CSVFile:
    """A file opened for reading as separated values, one line at a time."""

    def __init__(self, path: str | PathLike[str], delim: str = ",") -> None:
        self._file = open(path, "r", newline="")
        self._lines = iter(CSVReader(self._file, delim))
        self._pending: CSVLine | None = None
        self._advance()

    def _advance(self) -> None:
        self._pending = next(self._lines, None)

    def next_line(self) -> CSVLine:
        """Return the next line of the file."""
        if self._pending is None:
            raise EOFError("no more lines in the file")
        line = self._pending
        self._advance()
        return line

    def skip_line(self) -> None:
        """Discard the next line of the file, if there is one."""
        if self._pending is not None:
            self._advance()

    def __bool__(self) -> bool:
        return self._pending is not None

    def close(self) -> None:
        """Close the underlying file."""
        self._pending = None
        self._file.close()

    def __enter__(self) -> "CSVFile":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()