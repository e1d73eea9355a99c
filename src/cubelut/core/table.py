"""Dense 1D and 3D table storage.

Both tables hold float32 ColorTriple entries in numpy arrays. The 3D table
uses the shape (N, N, N, 3) indexed as table[r, g, b, ch]; its on-disk row
order is blue outermost, then green, red innermost (R fastest).
"""

from __future__ import annotations

from typing import Iterator, Sequence, Union

import numpy as np

from cubelut.config import MAX_1D_SIZE, MAX_3D_SIZE, MIN_LUT_SIZE
from cubelut.core.types import ColorTriple, TableDim


def _check_size(size: int, limit: int, label: str) -> None:
    if not MIN_LUT_SIZE <= size <= limit:
        raise ValueError(
            f"{label} size {size} out of range [{MIN_LUT_SIZE}, {limit}]"
        )


def _check_index(i: int, size: int) -> None:
    # numpy would silently wrap negative indices
    if not 0 <= i < size:
        raise IndexError(f"Index {i} out of range [0, {size})")


class Table1D:
    """Ordered sequence of N colors, N fixed at construction."""

    dim = TableDim.ONE_D

    def __init__(self, size: int):
        _check_size(size, MAX_1D_SIZE, "1D LUT")
        self._data = np.zeros((size, 3), dtype=np.float32)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Table1D":
        """Build a table from an (N, 3) array (copied)."""
        array = np.asarray(array, dtype=np.float32)
        if array.ndim != 2 or array.shape[1] != 3:
            raise ValueError(f"Expected (N, 3) array, got {array.shape}")
        table = cls(array.shape[0])
        table._data[...] = array
        return table

    @property
    def size(self) -> int:
        return self._data.shape[0]

    @property
    def array(self) -> np.ndarray:
        """Read-only view of the (N, 3) storage."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return self.size

    def at(self, i: int) -> ColorTriple:
        _check_index(i, self.size)
        return ColorTriple.from_sequence(self._data[i])

    def set(self, i: int, color: Sequence[float]) -> None:
        _check_index(i, self.size)
        self._data[i] = tuple(color)

    def rows(self) -> Iterator[ColorTriple]:
        """Entries in file order."""
        for i in range(self.size):
            yield ColorTriple.from_sequence(self._data[i])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table1D):
            return NotImplemented
        return np.array_equal(self._data, other._data)

    def __repr__(self) -> str:
        return f"Table1D(size={self.size})"


class Table3D:
    """Dense cube of N**3 colors, edge length N fixed at construction."""

    dim = TableDim.THREE_D

    def __init__(self, size: int):
        _check_size(size, MAX_3D_SIZE, "3D LUT")
        self._data = np.zeros((size, size, size, 3), dtype=np.float32)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Table3D":
        """Build a table from an (N, N, N, 3) array indexed [r, g, b, ch]."""
        array = np.asarray(array, dtype=np.float32)
        N = array.shape[0] if array.ndim == 4 else 0
        if array.shape != (N, N, N, 3):
            raise ValueError(f"Expected (N, N, N, 3) array, got {array.shape}")
        table = cls(N)
        table._data[...] = array
        return table

    @classmethod
    def from_rows(cls, rows: np.ndarray, size: int) -> "Table3D":
        """Build a table from (N^3, 3) rows in file order (R fastest).

        Row b * N * N + g * N + r lands at (r, g, b).
        """
        rows = np.asarray(rows, dtype=np.float32)
        if rows.shape != (size ** 3, 3):
            raise ValueError(
                f"Expected ({size ** 3}, 3) rows for size {size}, got {rows.shape}"
            )
        table = cls(size)
        # Reshape gives [b, g, r, ch]; transpose to [r, g, b, ch]
        table._data[...] = np.transpose(rows.reshape(size, size, size, 3), (2, 1, 0, 3))
        return table

    @property
    def size(self) -> int:
        """Edge length N."""
        return self._data.shape[0]

    @property
    def array(self) -> np.ndarray:
        """Read-only (N, N, N, 3) view indexed [r, g, b, ch]."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return self.size

    def at(self, r: int, g: int, b: int) -> ColorTriple:
        N = self.size
        _check_index(r, N)
        _check_index(g, N)
        _check_index(b, N)
        return ColorTriple.from_sequence(self._data[r, g, b])

    def set(self, r: int, g: int, b: int, color: Sequence[float]) -> None:
        N = self.size
        _check_index(r, N)
        _check_index(g, N)
        _check_index(b, N)
        self._data[r, g, b] = tuple(color)

    def flat_rows(self) -> np.ndarray:
        """(N^3, 3) copy of the entries in file order (R fastest)."""
        return np.transpose(self._data, (2, 1, 0, 3)).reshape(-1, 3).copy()

    def rows(self) -> Iterator[ColorTriple]:
        """Entries in file order: blue outermost, red innermost."""
        N = self.size
        for b in range(N):
            for g in range(N):
                for r in range(N):
                    yield ColorTriple.from_sequence(self._data[r, g, b])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table3D):
            return NotImplemented
        return np.array_equal(self._data, other._data)

    def __repr__(self) -> str:
        return f"Table3D(size={self.size})"


Table = Union[Table1D, Table3D]


def identity_table(N: int) -> Table3D:
    """3D identity table: entry (r, g, b) holds (r, g, b) / (N - 1)."""
    coords = np.linspace(0.0, 1.0, N, dtype=np.float32)
    r, g, b = np.meshgrid(coords, coords, coords, indexing="ij")
    return Table3D.from_array(np.stack([r, g, b], axis=-1))
