"""
Variance minimisation over columns, rows and column blocks.

A uniform, unmarked margin has near-zero local variance, so the blankest
line inside a small window around an approximate edge snaps to the true
margin/background transition. Lines darker than a brightness floor are
treated as background or binding shadow and never chosen.
"""

import logging

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from leafcrop.services.imaging import require_gray
from leafcrop.services.models import VarianceCandidate
from leafcrop.utils.exceptions import PreconditionError

logger = logging.getLogger(__name__)

_DEFAULT_TRIM = 0.20


def _require_window(gray: np.ndarray, left: int, right: int, top: int, bottom: int, function: str):
    h, w = require_gray(gray, function)
    if not 0 <= left < right < w:
        raise PreconditionError(function, f"columns [{left}, {right}] not inside width {w}")
    if not 0 <= top < bottom < h:
        raise PreconditionError(function, f"rows [{top}, {bottom}] not inside height {h}")
    return h, w


def _trimmed(start: int, stop: int, trim: float, function: str) -> tuple[int, int]:
    """Inset ``[start, stop)`` by ``trim`` of its length on each side."""
    inset = int((stop - start) * trim)
    lo, hi = start + inset, stop - inset
    if lo >= hi:
        raise PreconditionError(function, f"band [{start}, {stop}) empty after trimming")
    return lo, hi


def _pick_minimum(variances: np.ndarray, means: np.ndarray, floor: float | None, offset: int):
    if floor is not None:
        variances = np.where(means < floor, np.inf, variances)
    if variances.size == 0 or not np.isfinite(variances).any():
        return None
    best = int(np.argmin(variances))
    return VarianceCandidate(index=offset + best, variance=float(variances[best]))


def min_variance_column(
    gray: np.ndarray,
    left: int,
    right: int,
    top: int,
    bottom: int,
    brightness_floor: float,
    trim: float = _DEFAULT_TRIM,
) -> VarianceCandidate | None:
    """Column in ``[left, right]`` with the least sum of squared deviation.

    Each column is measured over the rows of ``[top, bottom)`` left after
    trimming ``trim`` of the band from both ends. Columns whose mean is
    below ``brightness_floor`` are skipped; the first column wins ties.

    Returns:
        The winning column, or None when every column was skipped
    """
    _require_window(gray, left, right, top, bottom, "min_variance_column")
    r0, r1 = _trimmed(top, bottom, trim, "min_variance_column")

    block = gray[r0:r1, left : right + 1].astype(np.float64)
    means = block.mean(axis=0)
    variances = ((block - means) ** 2).sum(axis=0)
    return _pick_minimum(variances, means, brightness_floor, left)


def min_variance_row(
    gray: np.ndarray,
    left: int,
    right: int,
    top: int,
    bottom: int,
    brightness_floor: float,
    trim: float = _DEFAULT_TRIM,
) -> VarianceCandidate | None:
    """Row in ``[top, bottom]`` with the least sum of squared deviation.

    Symmetric to :func:`min_variance_column`, trimming the column band
    ``[left, right)`` instead.
    """
    _require_window(gray, left, right, top, bottom, "min_variance_row")
    c0, c1 = _trimmed(left, right, trim, "min_variance_row")

    block = gray[top : bottom + 1, c0:c1].astype(np.float64)
    means = block.mean(axis=1)
    variances = ((block - means[:, None]) ** 2).sum(axis=1)
    return _pick_minimum(variances, means, brightness_floor, top)


def min_block_variance_column(
    gray: np.ndarray,
    left: int,
    right: int,
    top: int,
    bottom: int,
    kernel_width: int,
    brightness_floor: float | None = None,
) -> VarianceCandidate | None:
    """First column of the ``kernel_width``-wide block with the least variance.

    Blocks start at every column in ``[left, right - kernel_width]`` and
    span rows ``[top, bottom]``. Mean and variance are computed jointly
    over the whole block; the variance is normalised by the block size.

    Args:
        gray: Grayscale buffer
        left: First candidate column
        right: Last column any block may cover
        top: First row of the blocks
        bottom: Last row of the blocks (inclusive)
        kernel_width: Number of columns per block
        brightness_floor: Optional floor; darker blocks are skipped

    Returns:
        The winning block start, or None when every block was skipped
    """
    _require_window(gray, left, right, top, bottom, "min_block_variance_column")
    if kernel_width < 1 or right < left + kernel_width:
        raise PreconditionError(
            "min_block_variance_column",
            f"window [{left}, {right}] narrower than kernel {kernel_width}",
        )

    region = gray[top : bottom + 1, left : right + 1].astype(np.float64)
    block_size = kernel_width * region.shape[0]
    col_sum = region.sum(axis=0)
    col_sq = (region * region).sum(axis=0)

    # Block starts run from left to right - kernel_width
    n_blocks = right - kernel_width - left + 1
    sums = sliding_window_view(col_sum, kernel_width).sum(axis=1)[:n_blocks]
    squares = sliding_window_view(col_sq, kernel_width).sum(axis=1)[:n_blocks]

    means = sums / block_size
    variances = np.maximum(squares / block_size - means * means, 0.0)
    return _pick_minimum(variances, means, brightness_floor, left)
