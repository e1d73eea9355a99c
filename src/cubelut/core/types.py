"""Core data types and enums for cubelut.

Table arrays are indexed lut[r, g, b, channel]; on disk, red varies fastest.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterator, Sequence

import numpy as np


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LutStatus(IntEnum):
    """Result of loading or saving a .cube document.

    Anything other than OK is terminal: the document is unusable.
    """
    OK = 0
    NOT_INITIALIZED = 1
    READ_ERROR = 10
    WRITE_ERROR = 11
    PREMATURE_END_OF_FILE = 12
    LINE_ERROR = 13
    UNKNOWN_OR_REPEATED_KEYWORD = 20
    TITLE_MISSING_QUOTE = 21
    DOMAIN_BOUNDS_REVERSED = 22
    LUT_SIZE_OUT_OF_RANGE = 23
    COULD_NOT_PARSE_TABLE_DATA = 24


class TableDim(str, Enum):
    """Shape of the table held by a document."""
    ONE_D = "1D"
    THREE_D = "3D"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColorTriple:
    """An (R, G, B) value."""
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "ColorTriple":
        if len(values) != 3:
            raise ValueError(f"Expected 3 channel values, got {len(values)}")
        return cls(float(values[0]), float(values[1]), float(values[2]))

    @classmethod
    def splat(cls, value: float) -> "ColorTriple":
        return cls(value, value, value)

    def __iter__(self) -> Iterator[float]:
        yield self.r
        yield self.g
        yield self.b

    def as_array(self, dtype=np.float32) -> np.ndarray:
        return np.array([self.r, self.g, self.b], dtype=dtype)
