"""
Windowed luma statistics over columns, rows and blocks of a grey buffer.

All windows must lie inside the buffer; a violation is a caller contract
breach and raises PreconditionError immediately.
"""

import numpy as np

from leafcrop.services.imaging import require_gray
from leafcrop.utils.exceptions import PreconditionError


def _require_span(name: str, start: int, stop: int, limit: int, function: str) -> None:
    if not 0 <= start < stop <= limit:
        raise PreconditionError(
            function, f"{name} window [{start}, {stop}) not inside [0, {limit})"
        )


def average_column(gray: np.ndarray, i: int, j_top: int, j_bot: int) -> float:
    """Mean luma of column ``i`` over rows ``[j_top, j_bot)``."""
    h, w = require_gray(gray, "average_column")
    if not 0 <= i < w:
        raise PreconditionError("average_column", f"column {i} outside width {w}")
    _require_span("row", j_top, j_bot, h, "average_column")
    return float(gray[j_top:j_bot, i].mean(dtype=np.float64))


def average_row(gray: np.ndarray, j: int, i_left: int, i_right: int) -> float:
    """Mean luma of row ``j`` over columns ``[i_left, i_right)``."""
    h, w = require_gray(gray, "average_row")
    if not 0 <= j < h:
        raise PreconditionError("average_row", f"row {j} outside height {h}")
    _require_span("column", i_left, i_right, w, "average_row")
    return float(gray[j, i_left:i_right].mean(dtype=np.float64))


def average_block(gray: np.ndarray, left: int, right: int, top: int, bottom: int) -> float:
    """Mean luma of the inclusive rectangle ``[left, right] x [top, bottom]``."""
    h, w = require_gray(gray, "average_block")
    _require_span("column", left, right + 1, w, "average_block")
    _require_span("row", top, bottom + 1, h, "average_block")
    return float(gray[top : bottom + 1, left : right + 1].mean(dtype=np.float64))
