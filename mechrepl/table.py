"""
table — immutable snapshots of engine tables.

A Table is a dense rows × columns grid of values backed by a read-only
numpy object array. Values are numbers, booleans, strings, or anything
else the engine produces.
"""

from __future__ import annotations

import numbers
from typing import Any, Iterable, Iterator, Sequence

import numpy as np


class Table:
    """Rectangular grid of cell values."""

    def __init__(self, data: np.ndarray):
        if data.ndim != 2:
            raise ValueError(f"table data must be 2-D, got shape {data.shape}")
        data = np.array(data, dtype=object, copy=True)
        data.flags.writeable = False
        self._data = data

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]]) -> "Table":
        rows = [list(r) for r in rows]
        width = len(rows[0]) if rows else 0
        if any(len(r) != width for r in rows):
            raise ValueError("ragged rows: every row needs the same number of columns")
        data = np.empty((len(rows), width), dtype=object)
        for i, row in enumerate(rows):
            for j, value in enumerate(row):
                data[i, j] = value
        return cls(data)

    @classmethod
    def column(cls, values: Iterable[Any]) -> "Table":
        return cls.from_rows([[v] for v in values])

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def columns(self) -> int:
        return self._data.shape[1]

    @property
    def data(self) -> np.ndarray:
        return self._data

    def get(self, row: int, column: int) -> Any:
        return self._data[row, column]

    def cells(self) -> Iterator[Any]:
        """Every cell, rows outer and columns inner."""
        for row in range(self.rows):
            for column in range(self.columns):
                yield self._data[row, column]

    def __eq__(self, other):
        if not isinstance(other, Table):
            return NotImplemented
        return self._data.shape == other._data.shape and all(
            a == b for a, b in zip(self.cells(), other.cells()))

    def __repr__(self):
        return f"Table({self.rows}x{self.columns})"

    def __reduce__(self):
        return (Table, (np.array(self._data, dtype=object),))


def is_bool(value: Any) -> bool:
    return isinstance(value, (bool, np.bool_))


def is_number(value: Any) -> bool:
    return not is_bool(value) and isinstance(value, numbers.Real)


def is_false(value: Any) -> bool:
    """True only for a boolean false, never for 0 or an empty string."""
    return is_bool(value) and not bool(value)
