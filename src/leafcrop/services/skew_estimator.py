"""
Edge-based skew estimation from the row-sum signal of the page interior.

When text lines are exactly horizontal, rows alternate crisply between
ink and paper and the row sums change sharply from one row to the next.
Any residual skew smears the signal, so the sum of squared row-to-row
differences peaks at the correcting angle.
"""

import logging
from dataclasses import dataclass

import numpy as np

from leafcrop.services.angle_search import (
    RotateFn,
    calc_limit_left,
    calc_limit_top,
    sweep_angles,
    sweep_scores,
)
from leafcrop.services.crop_config import CropConfig
from leafcrop.services.edge_scorer import total_row_sad
from leafcrop.services.imaging import require_gray, rotate_by_angle
from leafcrop.services.models import AngleSample, Rectangle
from leafcrop.utils.exceptions import PreconditionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkewEstimate:
    """Result of an edge skew sweep.

    Attributes:
        angle: Angle with the highest score (0.0 if none beat the baseline)
        confidence: Highest score divided by lowest; 0.0 when the lowest is 0
        max_score: Highest score seen, baseline included
        min_score: Lowest score seen, baseline included
        baseline: Score of the unrotated buffer
        samples: Score of every swept angle
    """

    angle: float
    confidence: float
    max_score: float
    min_score: float
    baseline: float
    samples: tuple[AngleSample, ...] = ()


def differential_square_sum(gray: np.ndarray, rect: Rectangle) -> float:
    """Sum of squared differences between consecutive row sums.

    Row sums cover columns ``[left, right]`` (inclusive); rows run over
    ``[top, bottom)``.
    """
    h, w = require_gray(gray, "differential_square_sum")
    if not (0 <= rect.left <= rect.right < w and 0 <= rect.top < rect.bottom <= h):
        raise PreconditionError("differential_square_sum", f"{rect} outside {w}x{h} buffer")

    row_sums = gray[rect.top : rect.bottom, rect.left : rect.right + 1].sum(axis=1, dtype=np.int64)
    diffs = np.diff(row_sums).astype(np.float64)
    return float(np.dot(diffs, diffs))


def _shrink(rect: Rectangle, width: int, height: int, fraction: float) -> Rectangle:
    """Inset the box by a fraction of the buffer size, if it is big enough."""
    dx = int(width * fraction)
    dy = int(height * fraction)
    if rect.width > 2 * dx and rect.height > 2 * dy:
        return Rectangle(rect.left + dx, rect.right - dx, rect.top + dy, rect.bottom - dy)
    return rect


def _clamp_to_interior(rect: Rectangle, width: int, height: int, angle: float) -> Rectangle:
    """Shrink the box so it never covers pixels a rotation filled with black."""
    limit_left = calc_limit_left(width, height, angle)
    limit_top = calc_limit_top(width, height, angle)
    return Rectangle(
        left=max(rect.left, limit_left),
        right=min(rect.right, width - limit_left, width - 1),
        top=max(rect.top, limit_top),
        bottom=min(rect.bottom, height - limit_top),
    )


def estimate_edge_skew(
    gray: np.ndarray,
    rect: Rectangle,
    config: CropConfig | None = None,
    rotate: RotateFn = rotate_by_angle,
) -> SkewEstimate:
    """Find the rotation that makes the content inside ``rect`` most horizontal.

    Works best on a binarised page. The unrotated score is the baseline;
    sweep angles within ``zero_angle_tolerance`` of zero are skipped.

    Args:
        gray: Grayscale or 0/1 binary buffer
        rect: Approximate page box, right edge inclusive, bottom exclusive
        config: Sweep parameters and objective selection
        rotate: Rotation operator used by the sweep

    Returns:
        SkewEstimate
    """
    config = config or CropConfig()
    h, w = require_gray(gray, "estimate_edge_skew")
    if not (rect.left < rect.right and rect.top < rect.bottom):
        raise PreconditionError("estimate_edge_skew", f"degenerate box {rect}")

    score = differential_square_sum
    if config.edge_skew_score == "row_sad":
        score = _row_sad_score

    box = _shrink(rect, w, h, config.skew_inset_fraction)
    baseline = score(gray, box)

    def objective(rotated: np.ndarray, angle: float) -> float | None:
        if abs(angle) < config.zero_angle_tolerance:
            return None
        clamped = _clamp_to_interior(box, w, h, angle)
        if clamped.left >= clamped.right or clamped.top >= clamped.bottom:
            return None
        return score(rotated, clamped)

    samples = sweep_scores(gray, sweep_angles(config), objective, rotate)

    max_score = min_score = baseline
    best_angle = 0.0
    for sample in samples:
        if sample.score > max_score:
            max_score = sample.score
            best_angle = sample.angle
        if sample.score < min_score:
            min_score = sample.score

    confidence = max_score / min_score if min_score > 0 else 0.0
    logger.debug(
        f"Edge skew ({config.edge_skew_score}): angle={best_angle:+.2f}° "
        f"confidence={confidence:.3f} baseline={baseline:.0f}"
    )
    return SkewEstimate(
        angle=best_angle,
        confidence=confidence,
        max_score=max_score,
        min_score=min_score,
        baseline=baseline,
        samples=tuple(samples),
    )


def _row_sad_score(gray: np.ndarray, rect: Rectangle) -> float:
    # total_row_sad reads row bottom + 1 and treats right as exclusive
    h = gray.shape[0]
    bottom = min(rect.bottom, h - 1)
    return total_row_sad(gray, Rectangle(rect.left, rect.right + 1, rect.top, bottom))
