"""
Full-resolution refinement of a coarse crop box.

The coarse box comes from the reduced decode and is only accurate to a
few reduced pixels. Each edge is re-located inside a small window around
its coarse position by variance minimisation, which snaps to the blank
margin next to the page boundary.
"""

import logging

import numpy as np

from leafcrop.services.angle_search import calc_limit_left
from leafcrop.services.crop_config import CropConfig
from leafcrop.services.edge_scorer import strongest_column_edge
from leafcrop.services.imaging import require_gray
from leafcrop.services.models import CropBox
from leafcrop.services.orientation import LeafOrientation
from leafcrop.services.variance import (
    min_block_variance_column,
    min_variance_column,
    min_variance_row,
)
from leafcrop.utils.exceptions import EdgeNotFoundError

logger = logging.getLogger(__name__)

# Columns the binding-side block window starts before the coarse edge
_BINDING_BACKOFF = 5


def _window(center: int, radius: int, size: int) -> tuple[int, int]:
    return max(0, center - radius), min(size - 1, center + radius)


def adjust_crop_box(
    gray: np.ndarray,
    box: CropBox,
    search_radius: int,
    config: CropConfig | None = None,
) -> CropBox:
    """Snap each edge of ``box`` to the blankest line near it, in place.

    Left and right are refined first, over the rows of the box; top and
    bottom are then refined over the new columns. A SAD probe runs on the
    column windows for diagnostics only.

    Ties go to the first line of a window. Where the page margin is blank
    up to the right or bottom edge, that edge moves inward by up to
    ``search_radius`` on every call, so a refined box is not a fixed point.

    Args:
        gray: Full-resolution grayscale buffer, already deskewed
        box: Complete crop box; mutated in place
        search_radius: Half-size of every search window in pixels
        config: Supplies the brightness floor and variance trim

    Returns:
        The same box

    Raises:
        EdgeNotFoundError: If every line of a window is below the floor
    """
    config = config or CropConfig()
    h, w = require_gray(gray, "adjust_crop_box")
    rect = box.as_rectangle()
    rect.require_within(w, h, "adjust_crop_box")
    floor = config.brightness_floor
    trim = config.variance_trim_fraction

    def refine_column(name: str, edge: int) -> int:
        lo, hi = _window(edge, search_radius, w)
        probe = strongest_column_edge(gray, lo, hi, rect.top, rect.bottom)
        found = min_variance_column(gray, lo, hi, rect.top, rect.bottom, floor, trim)
        if found is None:
            raise EdgeNotFoundError(name, f"no column above luma {floor} in [{lo}, {hi}]")
        logger.debug(
            f"Refine {name}: SAD probe {probe.index if probe else None}, "
            f"min variance at {found.index} ({found.variance:.1f})"
        )
        return found.index

    new_left = refine_column("left", rect.left)
    new_right = refine_column("right", rect.right)

    def refine_row(name: str, edge: int) -> int:
        lo, hi = _window(edge, search_radius, h)
        found = min_variance_row(gray, new_left, new_right, lo, hi, floor, trim)
        if found is None:
            raise EdgeNotFoundError(name, f"no row above luma {floor} in [{lo}, {hi}]")
        logger.debug(f"Refine {name}: min variance at {found.index} ({found.variance:.1f})")
        return found.index

    new_top = refine_row("top", rect.top)
    new_bottom = refine_row("bottom", rect.bottom)

    box.left, box.right, box.top, box.bottom = new_left, new_right, new_top, new_bottom
    box.history.append(f"adjusted r={search_radius}")
    return box


def adjust_crop_box_by_variance(
    gray: np.ndarray,
    box: CropBox,
    angle: float,
    orientation: LeafOrientation,
    config: CropConfig | None = None,
) -> CropBox:
    """Refine only the left and right edges using block variance, in place.

    The binding-side window starts a few pixels before the coarse edge and
    reaches a tenth of the width into the page; the outer window covers the
    last quarter of the width up to the rotation fill margin.

    Args:
        gray: Full-resolution grayscale buffer, already deskewed
        box: Complete crop box; mutated in place
        angle: Deskew angle applied to ``gray`` (degrees)
        orientation: Side of the binding
        config: Supplies the block width, brightness floor and window fractions

    Returns:
        The same box
    """
    config = config or CropConfig()
    h, w = require_gray(gray, "adjust_crop_box_by_variance")
    rect = box.as_rectangle()
    rect.require_within(w, h, "adjust_crop_box_by_variance")
    kernel = config.block_kernel_width
    floor = config.brightness_floor

    view = orientation.view(gray)
    if orientation.mirrored:
        binding, outer = w - 1 - rect.right, w - 1 - rect.left
    else:
        binding, outer = rect.left, rect.right

    limit = calc_limit_left(w, h, angle)
    left = max(limit, binding - _BINDING_BACKOFF)
    right = min(max(left + kernel, binding + int(w * config.binding_search_fraction)), w - 1)
    found = min_block_variance_column(view, left, right, rect.top, rect.bottom, kernel, floor)
    if found is None:
        raise EdgeNotFoundError("binding", f"no block in [{left}, {right}]")
    binding = found.index
    logger.debug(f"Block variance binding side: window [{left}, {right}] -> {binding}")

    left = int(w * config.outer_search_start)
    right = min(w - 1, w - limit)
    found = min_block_variance_column(view, left, right, rect.top, rect.bottom, kernel, floor)
    if found is None:
        raise EdgeNotFoundError("outer", f"no block in [{left}, {right}]")
    outer = found.index
    logger.debug(f"Block variance outer side: window [{left}, {right}] -> {outer}")

    if orientation.mirrored:
        box.left, box.right = w - 1 - outer, w - 1 - binding
    else:
        box.left, box.right = binding, outer
    box.history.append(f"block variance k={kernel}")
    return box
