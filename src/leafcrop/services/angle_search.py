"""
Rotation sweep over a fixed set of small angles.

Every detector and the edge skew estimator evaluate an objective on a
rotated copy of the buffer for each angle of the sweep. Only one rotated
copy is alive at a time: it is released as soon as it has been scored.
"""

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np

from leafcrop.services.crop_config import CropConfig
from leafcrop.services.imaging import rotate_by_angle
from leafcrop.services.models import AngleSample, EdgeCandidate

logger = logging.getLogger(__name__)

RotateFn = Callable[[np.ndarray, float], np.ndarray]
EdgeObjective = Callable[[np.ndarray, float], EdgeCandidate | None]
ScoreObjective = Callable[[np.ndarray, float], float | None]

_DEG_TO_RAD = np.float32(3.1415926535 / 180.0)


def sweep_angles(config: CropConfig | None = None) -> list[float]:
    """Return the closed angle sweep ``[sweep_start, sweep_stop]``.

    Angles are generated from an integer index so that accumulated
    floating point error never drops the last sample; with the defaults
    this yields the 41 angles -1.00, -0.95, ..., +1.00.
    """
    config = config or CropConfig()
    count = int(round((config.sweep_stop - config.sweep_start) / config.sweep_step)) + 1
    # + 0.0 turns -0.0 into 0.0
    return [round(config.sweep_start + k * config.sweep_step, 6) + 0.0 for k in range(count)]


def _half_diagonal(width: int, height: int) -> tuple[int, int, float, float]:
    w2 = width >> 1
    h2 = height >> 1
    r = float(np.float32(math.sqrt(w2 * w2 + h2 * h2)))
    theta = float(np.float32(math.atan2(h2, w2)))
    return w2, h2, r, theta


def calc_limit_left(width: int, height: int, angle: float) -> int:
    """Columns at each side that a rotation by ``angle`` may fill with black.

    Computed from the image half-diagonal in single precision. At angle 0
    the result can be 1 rather than 0 because of truncation.
    """
    w2, _, r, theta = _half_diagonal(width, height)
    radang = float(np.float32(abs(angle)) * _DEG_TO_RAD)
    return w2 - int(r * math.cos(theta + radang))


def calc_limit_top(width: int, height: int, angle: float) -> int:
    """Rows at top and bottom that a rotation by ``angle`` may fill with black."""
    _, h2, r, theta = _half_diagonal(width, height)
    radang = float(np.float32(abs(angle)) * _DEG_TO_RAD)
    return h2 - int(r * math.sin(theta - radang))


@dataclass(frozen=True)
class EdgeSweepResult:
    """Best angle of an edge sweep with its winning candidate."""

    angle: float
    candidate: EdgeCandidate
    samples: tuple[AngleSample, ...]


def search_edge_angle(
    gray: np.ndarray,
    angles: Sequence[float],
    objective: EdgeObjective,
    rotate: RotateFn = rotate_by_angle,
) -> EdgeSweepResult | None:
    """Find the angle whose rotated buffer yields the strongest edge.

    The whole sweep is always evaluated. A later angle replaces the best
    only with a strictly larger score.

    Args:
        gray: Grayscale buffer
        angles: Rotation angles in degrees
        objective: Called as ``objective(rotated, angle)``; returns the
            strongest edge of the rotated buffer or None
        rotate: Rotation operator (injectable for instrumentation)

    Returns:
        The best angle and candidate, or None if no angle produced one
    """
    best: EdgeCandidate | None = None
    best_angle = 0.0
    samples: list[AngleSample] = []

    for angle in angles:
        rotated = rotate(gray, angle)
        try:
            candidate = objective(rotated, angle)
        finally:
            del rotated

        samples.append(AngleSample(angle, float(candidate.score) if candidate else 0.0))
        if candidate is not None and (best is None or candidate.score > best.score):
            best = candidate
            best_angle = angle

    if best is None:
        logger.debug(f"Edge sweep over {len(samples)} angles found no candidate")
        return None

    logger.debug(
        f"Edge sweep best: angle={best_angle:+.2f}° index={best.index} score={best.score}"
    )
    return EdgeSweepResult(angle=best_angle, candidate=best, samples=tuple(samples))


def sweep_scores(
    gray: np.ndarray,
    angles: Sequence[float],
    objective: ScoreObjective,
    rotate: RotateFn = rotate_by_angle,
) -> list[AngleSample]:
    """Evaluate a scalar objective on the buffer rotated by every angle.

    Angles for which the objective returns None are left out of the result.
    """
    samples: list[AngleSample] = []
    for angle in angles:
        rotated = rotate(gray, angle)
        try:
            score = objective(rotated, angle)
        finally:
            del rotated
        if score is not None:
            samples.append(AngleSample(angle, float(score)))
    return samples
