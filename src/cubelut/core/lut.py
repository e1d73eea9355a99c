"""Identity generation and whole-image LUT application.

Image arrays use (H, W, C) layout with C = 3 (RGB) or 4 (RGBA).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from cubelut.config import DEFAULT_WORKERS, ROWS_PER_TASK
from cubelut.core.sampler import LutSampler
from cubelut.core.table import identity_table

logger = logging.getLogger(__name__)


def identity_lut(N: int) -> np.ndarray:
    """Generate an identity 3D LUT.

    Each node maps to its own normalized coordinate:
    lut[r, g, b] = (r/(N-1), g/(N-1), b/(N-1)).

    Returns:
        (N, N, N, 3) float32 array.
    """
    return np.array(identity_table(N).array)


def _float_to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.round(values * 255.0), 0.0, 255.0).astype(np.uint8)


def apply_lut_to_image(
    image: np.ndarray,
    sampler: LutSampler,
    workers: Optional[int] = None,
) -> np.ndarray:
    """Apply a sampler to every pixel of an image.

    uint8 images are read as value / 255 and written back rounded and
    clamped to 8 bits. Float images are sampled as-is and returned as
    float32. An alpha channel is passed through untouched.

    Row bands are processed concurrently; the sampler is read-only.

    Args:
        image: (H, W, 3) or (H, W, 4) array.
        sampler: Sampler over a 3D document.
        workers: Thread count (default DEFAULT_WORKERS, 1 disables threading).

    Returns:
        New array with the same shape and dtype class as ``image``.
    """
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected (H,W,3) or (H,W,4), got {image.shape}")

    is_uint8 = image.dtype == np.uint8
    height = image.shape[0]
    out = image.copy() if is_uint8 else image.astype(np.float32)

    def process(start: int, stop: int) -> None:
        band = image[start:stop, :, :3].reshape(-1, 3).astype(np.float64)
        if is_uint8:
            band /= 255.0
        result = sampler.lookup_array(band).reshape(stop - start, image.shape[1], 3)
        out[start:stop, :, :3] = _float_to_uint8(result) if is_uint8 else result

    bands = [(s, min(s + ROWS_PER_TASK, height)) for s in range(0, height, ROWS_PER_TASK)]
    workers = DEFAULT_WORKERS if workers is None else workers

    if workers > 1 and len(bands) > 1:
        logger.debug("Applying LUT to %d row bands on %d threads", len(bands), workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(process, s, e) for s, e in bands]
            for future in futures:
                future.result()
    else:
        for s, e in bands:
            process(s, e)

    return out
