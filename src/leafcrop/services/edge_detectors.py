"""
Page edge detectors for a photographed book leaf.

Each detector sweeps the small rotation range, scores a SAD window on
every rotated copy and keeps the strongest edge. All detectors work on the
detector view, where the binding is on the left; see
:mod:`leafcrop.services.orientation` for the mirrored case.

- Binding edge: first tenth of the width, middle band of the height,
  confirmed by a short run of dark shadow columns
- Outer edge: last quarter of the width, no confirmation
- Top/bottom edges: a band of rows starting at the binding edge
"""

import logging
from dataclasses import dataclass

import numpy as np

from leafcrop.services.angle_search import (
    RotateFn,
    calc_limit_left,
    calc_limit_top,
    search_edge_angle,
    sweep_angles,
)
from leafcrop.services.crop_config import CropConfig
from leafcrop.services.edge_scorer import strongest_column_edge, strongest_row_edge
from leafcrop.services.imaging import require_gray, rotate_by_angle
from leafcrop.services.models import EdgeCandidate, EdgeSide
from leafcrop.services.pixel_stats import average_column, average_row
from leafcrop.utils.exceptions import EdgeNotFoundError, PreconditionError

logger = logging.getLogger(__name__)


# ── Results ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BindingEdgeResult:
    """Binding edge found in the detector view.

    Attributes:
        edge: Far boundary of the shadow run (column)
        angle: Rotation angle at which the edge was strongest (degrees)
        threshold: Luma midway between the two columns straddling the edge
        dark_lines: Length of the confirmed shadow run
        score: SAD magnitude of the strongest edge
    """

    edge: int
    angle: float
    threshold: int
    dark_lines: int
    score: int


@dataclass(frozen=True)
class OuterEdgeResult:
    edge: int
    angle: float
    score: int


@dataclass(frozen=True)
class HorizontalEdgeResult:
    """Top or bottom edge; ``threshold`` is informational only."""

    side: EdgeSide
    edge: int
    angle: float
    threshold: int
    score: int


# ── Helpers ─────────────────────────────────────────────────────────


def _kernel_band(height: int, config: CropConfig) -> tuple[int, int]:
    """Rows of the vertical measurement band centred on mid-height."""
    j_top = int((1 - config.kernel_height_fraction) * 0.5 * height)
    j_bot = int((1 + config.kernel_height_fraction) * 0.5 * height)
    return j_top, j_bot


def _walk_dark_run(
    rotated: np.ndarray, edge: int, threshold: float, j_top: int, j_bot: int, width3p: int
) -> tuple[int, int]:
    """Count shadow columns next to the edge; return ``(far_edge, count)``.

    The walk goes towards whichever of the two straddling columns is darker.
    """
    w = rotated.shape[1]
    luma_a = average_column(rotated, edge, j_top, j_bot)
    luma_b = average_column(rotated, edge + 1, j_top, j_bot)
    count = 0

    if luma_a > luma_b:
        # Edge is the light side; shadow lies to the right
        limit = min(edge + width3p, w)
        far = limit - 1
        for i in range(edge + 1, limit):
            if average_column(rotated, i, j_top, j_bot) < threshold:
                count += 1
            else:
                far = i - 1
                break
    elif luma_a < luma_b:
        # Edge is the last shadow column; the run extends to the left
        far = edge
        stop = max(0, edge - width3p)
        for i in range(edge - 1, stop, -1):
            if average_column(rotated, i, j_top, j_bot) < threshold:
                count += 1
            else:
                break
    else:
        raise EdgeNotFoundError("binding", f"equal luma on both sides of column {edge}")

    return far, count


# ── Detectors ───────────────────────────────────────────────────────


def find_binding_edge(
    gray: np.ndarray,
    config: CropConfig | None = None,
    rotate: RotateFn = rotate_by_angle,
) -> BindingEdgeResult:
    """Locate the binding edge and derive the binarisation threshold.

    Args:
        gray: Grayscale buffer in the detector view (binding on the left)
        config: Detection parameters
        rotate: Rotation operator used by the sweep

    Returns:
        BindingEdgeResult

    Raises:
        EdgeNotFoundError: If no edge was found or the shadow run is
            implausibly short or long
    """
    config = config or CropConfig()
    h, w = require_gray(gray, "find_binding_edge")
    j_top, j_bot = _kernel_band(h, config)
    search_right = int(w * config.binding_search_fraction)

    def objective(rotated: np.ndarray, angle: float) -> EdgeCandidate | None:
        left = calc_limit_left(w, h, angle)
        if left >= search_right:
            return None
        return strongest_column_edge(rotated, left, search_right, j_top, j_bot)

    sweep = search_edge_angle(gray, sweep_angles(config), objective, rotate)
    if sweep is None:
        raise EdgeNotFoundError("binding", "no column transition in the binding window")

    edge = sweep.candidate.index
    rotated = rotate(gray, sweep.angle)
    try:
        luma_a = average_column(rotated, edge, j_top, j_bot)
        luma_b = average_column(rotated, edge + 1, j_top, j_bot)
        threshold = int((luma_a + luma_b) / 2)
        width3p = int(w * config.dark_run_fraction)
        far, count = _walk_dark_run(rotated, edge, threshold, j_top, j_bot, width3p)
    finally:
        del rotated

    logger.debug(
        f"Binding: strongest column {edge} at {sweep.angle:+.2f}°, "
        f"luma {luma_a:.1f}/{luma_b:.1f}, threshold {threshold}, dark run {count}"
    )

    if not 1 <= count < width3p:
        raise EdgeNotFoundError("binding", f"dark run of {count} columns outside [1, {width3p})")

    return BindingEdgeResult(
        edge=far,
        angle=sweep.angle,
        threshold=threshold,
        dark_lines=count,
        score=sweep.candidate.score,
    )


def find_outer_edge(
    gray: np.ndarray,
    config: CropConfig | None = None,
    rotate: RotateFn = rotate_by_angle,
) -> OuterEdgeResult:
    """Locate the page-to-background edge opposite the binding."""
    config = config or CropConfig()
    h, w = require_gray(gray, "find_outer_edge")
    j_top, j_bot = _kernel_band(h, config)
    search_left = int(w * config.outer_search_start)

    def objective(rotated: np.ndarray, angle: float) -> EdgeCandidate | None:
        right = w - calc_limit_left(w, h, angle) - 1
        if right <= search_left:
            return None
        return strongest_column_edge(rotated, search_left, right, j_top, j_bot)

    sweep = search_edge_angle(gray, sweep_angles(config), objective, rotate)
    if sweep is None:
        raise EdgeNotFoundError("outer", "no column transition in the outer window")

    logger.debug(f"Outer: column {sweep.candidate.index} at {sweep.angle:+.2f}°")
    return OuterEdgeResult(
        edge=sweep.candidate.index, angle=sweep.angle, score=sweep.candidate.score
    )


def find_horizontal_edge(
    gray: np.ndarray,
    side: EdgeSide,
    binding_edge: int,
    config: CropConfig | None = None,
    rotate: RotateFn = rotate_by_angle,
) -> HorizontalEdgeResult:
    """Locate the top or bottom page edge.

    Rows are scored over a band of columns starting at the binding edge,
    inside the top or bottom part of the height that a rotation cannot
    have filled with black.

    Args:
        gray: Grayscale buffer in the detector view
        side: EdgeSide.TOP or EdgeSide.BOTTOM
        binding_edge: Column of the binding edge
        config: Detection parameters
        rotate: Rotation operator used by the sweep

    Returns:
        HorizontalEdgeResult
    """
    config = config or CropConfig()
    h, w = require_gray(gray, "find_horizontal_edge")
    if not 0 <= binding_edge < w - 1:
        raise PreconditionError(
            "find_horizontal_edge", f"binding edge {binding_edge} outside width {w}"
        )

    band_left = binding_edge
    band_right = min(binding_edge + int(w * config.horizontal_band_fraction), w)
    height25 = int(h * config.horizontal_search_fraction)

    def objective(rotated: np.ndarray, angle: float) -> EdgeCandidate | None:
        limit = calc_limit_top(w, h, angle)
        if side == EdgeSide.TOP:
            top, bottom = limit, height25
        else:
            top, bottom = h - height25, h - limit - 1
        if top >= bottom:
            return None
        return strongest_row_edge(rotated, band_left, band_right, top, bottom)

    sweep = search_edge_angle(gray, sweep_angles(config), objective, rotate)
    if sweep is None:
        raise EdgeNotFoundError(side.value, "no row transition in the search window")

    edge = sweep.candidate.index
    rotated = rotate(gray, sweep.angle)
    try:
        luma_a = average_row(rotated, edge, band_left, band_right)
        luma_b = average_row(rotated, edge + 1, band_left, band_right)
    finally:
        del rotated
    threshold = int((luma_a + luma_b) / 2)

    logger.debug(
        f"Horizontal {side.value}: row {edge} at {sweep.angle:+.2f}° "
        f"score {sweep.candidate.score}, threshold {threshold}"
    )
    return HorizontalEdgeResult(
        side=side, edge=edge, angle=sweep.angle, threshold=threshold, score=sweep.candidate.score
    )


def confirm_gutter(gray: np.ndarray, config: CropConfig | None = None) -> bool:
    """Check for a matching second edge on the other side of the binding.

    A real gutter shadow has two edges of similar strength within a few
    percent of the width of each other. The buffer is not rotated.

    Returns:
        True if a second edge within the tolerance band was found
    """
    config = config or CropConfig()
    h, w = require_gray(gray, "confirm_gutter")
    j_top, j_bot = _kernel_band(h, config)
    width10 = int(w * config.binding_search_fraction)
    width3p = int(w * config.dark_run_fraction)
    if width3p < 1:
        logger.debug(f"Gutter: width {w} too narrow for a second-edge window")
        return False

    left = min(config.gutter_left_margin, width10)
    strong = strongest_column_edge(gray, left, width10, j_top, j_bot)
    if strong is None or strong.index == 0 or strong.index >= w - 2:
        logger.debug("Gutter: no usable strongest edge")
        return False

    e = strong.index
    second_left = strongest_column_edge(gray, max(0, e - width3p), e - 1, j_top, j_bot)
    second_right = strongest_column_edge(gray, e + 1, min(e + width3p, w - 1), j_top, j_bot)
    score_left = second_left.score if second_left else 0
    score_right = second_right.score if second_right else 0

    if score_left == score_right:
        logger.debug(f"Gutter: ambiguous second edge around column {e}")
        return False

    second = second_right if score_right > score_left else second_left
    low = strong.score * (1 - config.gutter_tolerance)
    high = strong.score * (1 + config.gutter_tolerance)
    found = low < second.score < high

    logger.debug(
        f"Gutter: strongest {e} ({strong.score}), second {second.index} ({second.score}), "
        f"{'found' if found else 'not found'}"
    )
    return found
