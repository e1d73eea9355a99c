"""Trilinear lookup into a loaded 3D LUT document.

Input colors are expressed in the document's domain. Each channel is
normalized against [domain_min, domain_max], scaled to grid space, clamped
to [0, N - 1] and split into a base index and fraction. Corners outside the
grid take the value of domain_min rather than the nearest cell.

The sampler never mutates the document, so several samplers (or threads
sharing one sampler) may read the same document concurrently as long as
nobody reloads it.
"""

from __future__ import annotations

import math

import numpy as np

from cubelut.core.table import Table1D, Table3D
from cubelut.core.types import ColorTriple, LutStatus
from cubelut.errors import LutDimensionError, ValidationError


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation, exact at t == 0 and t == 1."""
    if t == 1.0:
        return b
    return a + t * (b - a)


def blerp(c00: float, c10: float, c01: float, c11: float, tx: float, ty: float) -> float:
    """Bilinear interpolation over a unit square, x first."""
    return lerp(lerp(c00, c10, tx), lerp(c01, c11, tx), ty)


class LutSampler:
    """Trilinear sampler over a document's 3D table.

    Domain bounds and edge length are copied at construction. Lookups
    against a 1D document raise LutDimensionError.
    """

    def __init__(self, document):
        if document.status != LutStatus.OK:
            raise LutDimensionError(
                f"Cannot sample a document with status {document.status.name}"
            )
        self.document = document
        self.domain_min = document.domain_min
        self.domain_max = document.domain_max
        self.size = document.size

        self._dmin = document.domain_min.as_array(np.float64)
        self._dmax = document.domain_max.as_array(np.float64)

    def _table3d(self) -> Table3D:
        table = self.document.table
        if isinstance(table, Table3D):
            return table
        if isinstance(table, Table1D):
            raise LutDimensionError("LUT table is not 3D; 1D sampling is not supported")
        raise TypeError(f"Unsupported table type: {type(table).__name__}")

    def corner(self, r: int, g: int, b: int) -> ColorTriple:
        """Table entry at (r, g, b), or domain_min if any index is off-grid."""
        table = self._table3d()
        N = self.size
        if min(r, g, b) < 0 or max(r, g, b) >= N:
            return self.domain_min
        return table.at(r, g, b)

    def _grid_position(self, value: float, lo: float, hi: float) -> tuple[int, float]:
        x = (value - lo) / (hi - lo) * (self.size - 1)
        x = min(max(x, 0.0), float(self.size - 1))
        base = math.floor(x)
        return base, x - base

    def lookup(self, r: float, g: float, b: float) -> ColorTriple:
        """Interpolated table value for a color in the document's domain.

        Raises:
            LutDimensionError: If the table is 1D.
            ValidationError: If any channel is NaN or infinite.
        """
        self._table3d()
        if not (math.isfinite(r) and math.isfinite(g) and math.isfinite(b)):
            raise ValidationError(f"Cannot look up non-finite color ({r}, {g}, {b})")
        dmin, dmax = self.domain_min, self.domain_max
        ri, tr = self._grid_position(r, dmin.r, dmax.r)
        gi, tg = self._grid_position(g, dmin.g, dmax.g)
        bi, tb = self._grid_position(b, dmin.b, dmax.b)

        # Two bilinear passes over (b, g), one at each red index, then red
        near = [tuple(c) for c in (
            self.corner(ri, gi, bi), self.corner(ri, gi, bi + 1),
            self.corner(ri, gi + 1, bi), self.corner(ri, gi + 1, bi + 1),
        )]
        far = [tuple(c) for c in (
            self.corner(ri + 1, gi, bi), self.corner(ri + 1, gi, bi + 1),
            self.corner(ri + 1, gi + 1, bi), self.corner(ri + 1, gi + 1, bi + 1),
        )]
        out = []
        for ch in range(3):
            lo = blerp(*(c[ch] for c in near), tb, tg)
            hi = blerp(*(c[ch] for c in far), tb, tg)
            out.append(lerp(lo, hi, tr))
        return ColorTriple(*out)

    def lookup_array(self, colors: np.ndarray) -> np.ndarray:
        """Vectorized lookup, same arithmetic as ``lookup``.

        Args:
            colors: (M, 3) array of colors in the document's domain.

        Returns:
            (M, 3) float32 array of interpolated values.

        Raises:
            ValidationError: If any value is NaN or infinite.
        """
        table = self._table3d()
        colors = np.asarray(colors, dtype=np.float64)
        if colors.ndim != 2 or colors.shape[1] != 3:
            raise ValueError(f"Expected (M, 3) colors, got {colors.shape}")
        if not np.all(np.isfinite(colors)):
            raise ValidationError("Cannot look up non-finite colors")

        N = self.size
        scaled = (colors - self._dmin) / (self._dmax - self._dmin) * (N - 1)
        scaled = np.clip(scaled, 0.0, N - 1)
        base = np.floor(scaled).astype(np.int64)
        frac = scaled - base  # (M, 3)

        lut = table.array

        def fetch(dr: int, dg: int, db: int) -> np.ndarray:
            ri = base[:, 0] + dr
            gi = base[:, 1] + dg
            bi = base[:, 2] + db
            valid = (
                (ri >= 0) & (gi >= 0) & (bi >= 0)
                & (ri < N) & (gi < N) & (bi < N)
            )
            out = np.empty((colors.shape[0], 3), dtype=np.float64)
            out[:] = self._dmin
            out[valid] = lut[ri[valid], gi[valid], bi[valid]]
            return out

        tr = frac[:, 0:1]
        tg = frac[:, 1:2]
        tb = frac[:, 2:3]

        def vlerp(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
            return np.where(t == 1.0, b, a + t * (b - a))

        def vblerp(dr: int) -> np.ndarray:
            return vlerp(vlerp(fetch(dr, 0, 0), fetch(dr, 0, 1), tb),
                         vlerp(fetch(dr, 1, 0), fetch(dr, 1, 1), tb), tg)

        return vlerp(vblerp(0), vblerp(1), tr).astype(np.float32)
