"""
Sum-of-absolute-differences (SAD) edge scoring.

A page/background or binding boundary produces a large luma step across
exactly one pair of adjacent columns (or rows). Summing the step over a
band of rows (columns) rather than a single line suppresses fibre and
speckle noise.
"""

import logging

import numpy as np

from leafcrop.services.imaging import require_gray
from leafcrop.services.models import EdgeCandidate, Rectangle
from leafcrop.utils.exceptions import PreconditionError

logger = logging.getLogger(__name__)


def _best_of(profile: np.ndarray, offset: int) -> EdgeCandidate | None:
    """Pick the strongest entry; first seen wins ties, all-zero means none."""
    if profile.size == 0:
        return None
    best = int(np.argmax(profile))
    score = int(profile[best])
    if score <= 0:
        return None
    return EdgeCandidate(index=offset + best, score=score)


def column_sad_profile(
    gray: np.ndarray, left: int, right: int, j_top: int, j_bot: int
) -> np.ndarray:
    """SAD between column ``i`` and ``i + 1`` for every ``i`` in ``[left, right)``.

    Args:
        gray: Grayscale buffer
        left: First column of the range
        right: End of the range (exclusive); column ``right`` is read as the
            neighbour of the last scored column
        j_top: First row of the measurement band
        j_bot: End of the measurement band (exclusive)

    Returns:
        int64 array of ``right - left`` scores
    """
    h, w = require_gray(gray, "column_sad_profile")
    if left < 0 or right >= w or left > right:
        raise PreconditionError("column_sad_profile", f"columns [{left}, {right}] not in width {w}")
    if not 0 <= j_top < j_bot <= h:
        raise PreconditionError("column_sad_profile", f"rows [{j_top}, {j_bot}) not in height {h}")

    band = gray[j_top:j_bot, left : right + 1].astype(np.int32)
    return np.abs(np.diff(band, axis=1)).sum(axis=0, dtype=np.int64)


def row_sad_profile(gray: np.ndarray, left: int, right: int, top: int, bottom: int) -> np.ndarray:
    """SAD between row ``j`` and ``j + 1`` for every ``j`` in ``[top, bottom)``.

    The band covers columns ``[left, right)``.
    """
    h, w = require_gray(gray, "row_sad_profile")
    if not 0 <= left < right <= w:
        raise PreconditionError("row_sad_profile", f"columns [{left}, {right}) not in width {w}")
    if top < 0 or bottom >= h or top > bottom:
        raise PreconditionError("row_sad_profile", f"rows [{top}, {bottom}] not in height {h}")

    band = gray[top : bottom + 1, left:right].astype(np.int32)
    return np.abs(np.diff(band, axis=0)).sum(axis=1, dtype=np.int64)


def strongest_column_edge(
    gray: np.ndarray, left: int, right: int, j_top: int, j_bot: int
) -> EdgeCandidate | None:
    """Column ``i`` in ``[left, right)`` with the largest SAD against ``i + 1``.

    Returns None when the range is empty or every difference is zero.
    """
    return _best_of(column_sad_profile(gray, left, right, j_top, j_bot), left)


def strongest_row_edge(
    gray: np.ndarray, left: int, right: int, top: int, bottom: int
) -> EdgeCandidate | None:
    """Row ``j`` in ``[top, bottom)`` with the largest SAD against ``j + 1``.

    Returns None when the range is empty or every difference is zero.
    """
    return _best_of(row_sad_profile(gray, left, right, top, bottom), top)


def total_row_sad(gray: np.ndarray, rect: Rectangle) -> float:
    """Sum of all row-to-row absolute differences inside ``rect``.

    Columns ``[left, right)`` and row pairs ``j, j + 1`` for ``j`` in
    ``[top, bottom)``. Used as an alternative skew objective.
    """
    return float(row_sad_profile(gray, rect.left, rect.right, rect.top, rect.bottom).sum())
