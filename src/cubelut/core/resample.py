"""3D table resampling between grid sizes.

Useful when a tool only accepts a particular cube size (e.g. 33 or 65).
New grid nodes are spread evenly over the document's domain and sampled with
LutSampler, so a resized table interpolates the same way lookups do.
"""

from __future__ import annotations

import logging

import numpy as np

from cubelut.config import MAX_3D_SIZE, MIN_LUT_SIZE
from cubelut.core.sampler import LutSampler
from cubelut.core.table import Table3D
from cubelut.errors import LutDimensionError
from cubelut.io.cube import LutDocument

logger = logging.getLogger(__name__)


def resample_document(document: LutDocument, target_size: int) -> LutDocument:
    """Resample a 3D document to a different edge length.

    Title and domain carry over. Grid corners map to grid corners, so the
    table's endpoints are preserved.

    Args:
        document: OK LutDocument holding a 3D table.
        target_size: Desired edge length.

    Returns:
        New LutDocument of edge length ``target_size``.

    Raises:
        ValueError: If ``target_size`` is outside the 3D size range.
        LutDimensionError: If the document is not OK or its table is 1D.
    """
    if not MIN_LUT_SIZE <= target_size <= MAX_3D_SIZE:
        raise ValueError(
            f"Target size must be in [{MIN_LUT_SIZE}, {MAX_3D_SIZE}], got {target_size}"
        )
    sampler = LutSampler(document)
    table = document.table
    if not isinstance(table, Table3D):
        raise LutDimensionError("Only 3D tables can be resampled")

    if target_size == table.size:
        result = table.array
    else:
        logger.info("Resampling %d^3 -> %d^3", table.size, target_size)
        T = target_size
        axes = [
            np.linspace(lo, hi, T)
            for lo, hi in zip(document.domain_min, document.domain_max)
        ]
        rr, gg = np.meshgrid(axes[0], axes[1], indexing="ij")
        result = np.empty((T, T, T, 3), dtype=np.float32)
        # One blue slice at a time keeps the coordinate arrays at T^2 rows
        for bi, blue in enumerate(axes[2]):
            colors = np.stack([rr.ravel(), gg.ravel(), np.full(T * T, blue)], axis=1)
            result[:, :, bi] = sampler.lookup_array(colors).reshape(T, T, 3)

    return LutDocument.from_table(
        Table3D.from_array(result),
        title=document.title,
        domain_min=list(document.domain_min),
        domain_max=list(document.domain_max),
    )
