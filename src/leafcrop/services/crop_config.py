"""
Tunable parameters of the crop detection engine.

Every window fraction, angle sweep bound and threshold used by the
detectors is a named field here, with the empirically tuned value as the
default, so the detection code never carries magic literals.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from leafcrop.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

REFINE_MODES = ("variance", "block", "none")
EDGE_SKEW_SCORES = ("dss", "row_sad")


@dataclass
class CropConfig:
    """Configuration for crop-box detection and refinement.

    Attributes:
        sweep_start: First rotation angle of every edge sweep (degrees)
        sweep_stop: Last rotation angle of every edge sweep (degrees)
        sweep_step: Spacing of the sweep (degrees)
        kernel_height_fraction: Height of the vertical measurement band,
            centred on mid-height, as a fraction of image height
        binding_search_fraction: Binding edge is searched in this leading
            fraction of the width
        dark_run_fraction: Maximum length of the binding shadow walk
        outer_search_start: Outer edge is searched right of this fraction
        horizontal_band_fraction: Width of the band used for top/bottom
            edges, starting at the binding edge
        horizontal_search_fraction: Top/bottom edges are searched in this
            fraction of the height from each end
        variance_trim_fraction: Part of the band trimmed on each side
            before column/row variance is measured
        skew_inset_fraction: Crop box inset before the edge skew sweep
        zero_angle_tolerance: Sweep angles closer than this to zero are
            skipped by the edge skew estimator (baseline already measured)
        brightness_floor: Columns/rows darker than this are never chosen
            by variance minimisation
        reduction_factor: Decode reduction used for coarse detection
        search_radius: Refinement window half-size in reduced pixels
        block_kernel_width: Width of the block used by block variance
        gray_weights: Red, green and blue weights for grey conversion
        text_skew_range: Global text skew coarse sweep half-range (degrees)
        text_skew_step: Global text skew coarse sweep step (degrees)
        text_skew_precision: Global text skew final precision (degrees)
        text_skew_reduction: Downscale applied before the text skew sweep
        min_text_skew_confidence: Text skew below this is not applied
        min_edge_skew_confidence: Edge skew fallback below this is rejected;
            a sweep that never changes the score has confidence 1.0
        edge_skew_score: Objective of the edge skew estimator
        refine_mode: Full-resolution refinement strategy
        confirm_gutter: Run the two-sided gutter confirmation diagnostic
        gutter_tolerance: Relative SAD tolerance of the gutter confirmation
        gutter_left_margin: Columns skipped at the image border by it
        overlay_line_width: Line width of the debug crop rectangle
        overlay_color: RGB colour of the debug crop rectangle
    """

    # === Angle sweep ===
    sweep_start: float = -1.0
    sweep_stop: float = 1.0
    sweep_step: float = 0.05

    # === Detection windows (fractions of width/height) ===
    kernel_height_fraction: float = 0.30
    binding_search_fraction: float = 0.10
    dark_run_fraction: float = 0.03
    outer_search_start: float = 0.75
    horizontal_band_fraction: float = 0.50
    horizontal_search_fraction: float = 0.25
    variance_trim_fraction: float = 0.20
    skew_inset_fraction: float = 0.10
    zero_angle_tolerance: float = 0.01

    # === Thresholds ===
    brightness_floor: int = 140

    # === Resolution and refinement ===
    reduction_factor: int = 8
    search_radius: int = 5
    block_kernel_width: int = 10
    refine_mode: str = "variance"
    gray_weights: tuple[float, float, float] = (0.30, 0.60, 0.10)

    # === Skew selection ===
    text_skew_range: float = 7.0
    text_skew_step: float = 1.0
    text_skew_precision: float = 0.01
    text_skew_reduction: int = 4
    min_text_skew_confidence: float = 1.0
    min_edge_skew_confidence: float = 1.05
    edge_skew_score: str = "dss"

    # === Diagnostics ===
    confirm_gutter: bool = False
    gutter_tolerance: float = 0.20
    gutter_left_margin: int = 5
    overlay_line_width: int = 10
    overlay_color: tuple[int, int, int] = field(default=(255, 0, 0))

    @property
    def refine_radius(self) -> int:
        """Refinement half-window in full-resolution pixels."""
        return self.search_radius * self.reduction_factor

    def validate(self) -> CropConfig:
        """Check value ranges, raising ConfigurationError on the first problem."""
        if self.sweep_step <= 0:
            raise ConfigurationError("sweep_step", "must be positive")
        if self.sweep_stop < self.sweep_start:
            raise ConfigurationError("sweep_stop", "must not be below sweep_start")

        for name in (
            "kernel_height_fraction",
            "binding_search_fraction",
            "dark_run_fraction",
            "outer_search_start",
            "horizontal_band_fraction",
            "horizontal_search_fraction",
            "skew_inset_fraction",
        ):
            value = getattr(self, name)
            if not 0.0 < value < 1.0:
                raise ConfigurationError(name, f"{value} is not a fraction in (0, 1)")

        if not 0.0 <= self.variance_trim_fraction < 0.5:
            raise ConfigurationError("variance_trim_fraction", "must be in [0, 0.5)")
        if not 0 <= self.brightness_floor <= 255:
            raise ConfigurationError("brightness_floor", "must be a luma value in [0, 255]")
        if self.reduction_factor not in (1, 2, 4, 8):
            raise ConfigurationError("reduction_factor", "must be one of 1, 2, 4, 8")
        if self.search_radius < 1:
            raise ConfigurationError("search_radius", "must be at least 1")
        if self.block_kernel_width < 1:
            raise ConfigurationError("block_kernel_width", "must be at least 1")
        if self.refine_mode not in REFINE_MODES:
            raise ConfigurationError("refine_mode", f"expected one of {', '.join(REFINE_MODES)}")
        if self.edge_skew_score not in EDGE_SKEW_SCORES:
            raise ConfigurationError(
                "edge_skew_score", f"expected one of {', '.join(EDGE_SKEW_SCORES)}"
            )
        if len(self.gray_weights) != 3 or sum(self.gray_weights) <= 0:
            raise ConfigurationError("gray_weights", "expected three weights with positive sum")
        if self.text_skew_step <= 0 or self.text_skew_precision <= 0:
            raise ConfigurationError("text_skew_step", "steps must be positive")
        if self.text_skew_reduction < 1:
            raise ConfigurationError("text_skew_reduction", "must be at least 1")
        return self

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> CropConfig:
        """Build a configuration from defaults overridden by ``values``."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(unknown[0], "unknown setting")

        merged = dict(values)
        for name in ("gray_weights", "overlay_color"):
            if name in merged:
                merged[name] = tuple(merged[name])

        return cls(**merged).validate()

    @classmethod
    def from_json(cls, path: str | Path) -> CropConfig:
        """Load overrides from a JSON object file."""
        try:
            with open(path, encoding="utf-8") as f:
                values = json.load(f)
        except OSError as e:
            raise ConfigurationError(reason=f"cannot read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(reason=f"invalid JSON in {path}: {e}") from e

        if not isinstance(values, dict):
            raise ConfigurationError(reason=f"{path} must contain a JSON object")

        logger.debug(f"Loaded {len(values)} configuration overrides from {path}")
        return cls.from_dict(values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
