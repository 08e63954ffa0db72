"""
Global text skew estimate from the horizontal projection profile.

The binarised page is reduced, then rotated over a coarse range of
angles. The angle whose row projection has the sharpest row-to-row
variation is refined with a bounded scalar search. The returned angle is
the rotation that straightens the text.
"""

import logging
from dataclasses import dataclass

import cv2
import numpy as np
from scipy.optimize import minimize_scalar

from leafcrop.services.crop_config import CropConfig
from leafcrop.services.imaging import rotate_by_angle
from leafcrop.utils.exceptions import PreconditionError, SkewEstimateError

logger = logging.getLogger(__name__)

# Below this many ink pixels after reduction there is no text to measure
_MIN_INK_PIXELS = 1.0


@dataclass(frozen=True)
class TextSkew:
    """Correction angle (degrees, positive clockwise) and its confidence.

    Confidence is the best coarse score over the worst; it is 0.0 when the
    best coarse angle sits on the edge of the sweep.
    """

    angle: float
    confidence: float
    coarse_angle: float


def _reduce(binary: np.ndarray, factor: int) -> np.ndarray:
    ink = binary.astype(np.float32)
    if factor <= 1:
        return ink
    h, w = ink.shape
    size = (max(1, w // factor), max(1, h // factor))
    return cv2.resize(ink, size, interpolation=cv2.INTER_AREA)


def _profile_score(ink: np.ndarray, angle: float) -> float:
    rotated = rotate_by_angle(ink, angle)
    row_sums = rotated.sum(axis=1, dtype=np.float64)
    del rotated
    diffs = np.diff(row_sums)
    return float(np.dot(diffs, diffs))


def estimate_text_skew(binary: np.ndarray, config: CropConfig | None = None) -> TextSkew:
    """Estimate the skew of the text on a binarised page.

    Args:
        binary: 2-D buffer with 1 (or any non-zero value) for ink
        config: Sweep range, step, precision and reduction

    Returns:
        TextSkew

    Raises:
        SkewEstimateError: If the page carries no ink at all
    """
    config = config or CropConfig()
    if binary.ndim != 2 or min(binary.shape) < 2:
        raise PreconditionError("estimate_text_skew", "expected a 2-D binary buffer")

    ink = _reduce((binary > 0).astype(np.uint8), config.text_skew_reduction)
    if ink.sum() < _MIN_INK_PIXELS:
        raise SkewEstimateError("no text found on the page")

    step = config.text_skew_step
    count = int(round(2 * config.text_skew_range / step)) + 1
    angles = [round(-config.text_skew_range + k * step, 6) + 0.0 for k in range(count)]
    scores = np.array([_profile_score(ink, a) for a in angles])

    best = int(np.argmax(scores))
    coarse = angles[best]
    worst = float(scores.min())

    if best in (0, len(angles) - 1) or worst <= 0:
        confidence = 0.0
    else:
        confidence = float(scores[best]) / worst

    result = minimize_scalar(
        lambda a: -_profile_score(ink, a),
        bounds=(coarse - step, coarse + step),
        method="bounded",
        options={"xatol": config.text_skew_precision},
    )
    angle = coarse
    if result.success and -result.fun >= scores[best]:
        angle = float(result.x)

    decimals = max(0, int(round(-np.log10(config.text_skew_precision))))
    angle = round(angle, decimals) + 0.0

    logger.debug(
        f"Text skew: coarse {coarse:+.1f}°, refined {angle:+.2f}°, confidence {confidence:.3f}"
    )
    return TextSkew(angle=angle, confidence=confidence, coarse_angle=coarse)
