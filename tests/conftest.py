"""Shared fixtures for CubeLUT tests."""

from __future__ import annotations

import numpy as np
import pytest


def cube_text(rows, header=("LUT_3D_SIZE 2",), sep="\n") -> str:
    """Assemble .cube text from header lines and (r, g, b) rows."""
    lines = list(header) + [f"{r} {g} {b}" for r, g, b in rows]
    return sep.join(lines) + sep


@pytest.fixture
def make_cube():
    """Builder for .cube text: make_cube(rows, header=..., sep=...)."""
    return cube_text


@pytest.fixture
def corner_rows():
    """The 8 rows of a 2^3 identity cube in file order (R fastest)."""
    rows = []
    for b in (0, 1):
        for g in (0, 1):
            for r in (0, 1):
                rows.append((float(r), float(g), float(b)))
    return rows


@pytest.fixture
def corner_cube(corner_rows):
    """.cube text for the 2^3 identity cube."""
    return cube_text(corner_rows)


@pytest.fixture
def tagged_rows_3():
    """27 rows where row i encodes its own index: (i, 0.5, -i)."""
    return [(float(i), 0.5, float(-i)) for i in range(27)]


@pytest.fixture
def random_lut():
    """Random 9^3 LUT array indexed [r, g, b, ch]."""
    rng = np.random.default_rng(42)
    return rng.random((9, 9, 9, 3), dtype=np.float32)


@pytest.fixture
def tmp_cube_path(tmp_path):
    """Temporary .cube output path."""
    return tmp_path / "test_output.cube"
