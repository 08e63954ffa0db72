"""
Crop box detection for one photographed book leaf.

Thin coordinator that runs the detection phases in order:

1. Coarse detection on a 1/8 decode: binding, top, bottom and outer edges
2. Skew estimation on the binarised full-resolution page, text first,
   edge-based as a fallback
3. Full-resolution refinement of the scaled crop box on the deskewed page
4. Optional debug artefacts and crop overlay
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

import numpy as np

from leafcrop.config import DEBUG_BINARY_NAME, DEBUG_CROP_NAME, DEBUG_GRAY_NAME
from leafcrop.services.angle_search import RotateFn
from leafcrop.services.crop_config import CropConfig
from leafcrop.services.crop_refiner import adjust_crop_box, adjust_crop_box_by_variance
from leafcrop.services.edge_detectors import (
    BindingEdgeResult,
    HorizontalEdgeResult,
    OuterEdgeResult,
    confirm_gutter,
    find_binding_edge,
    find_horizontal_edge,
    find_outer_edge,
)
from leafcrop.services.imaging import (
    clip,
    decode,
    draw_rectangle_overlay,
    encode,
    rotate90,
    rotate_by_angle,
    threshold_to_binary,
    to_grayscale,
)
from leafcrop.services.models import CropBox, EdgeSide, Rectangle, RotationDirection
from leafcrop.services.orientation import LeafOrientation
from leafcrop.services.skew_estimator import SkewEstimate, estimate_edge_skew
from leafcrop.services.text_skew import TextSkew, estimate_text_skew
from leafcrop.utils.exceptions import SkewEstimateError

logger = logging.getLogger(__name__)

__all__ = ["CoarseDetection", "CropResult", "LeafCropper"]


@dataclass
class CoarseDetection:
    """Edges found on the reduced decode, in reduced coordinates."""

    box: CropBox
    binding: BindingEdgeResult
    outer: OuterEdgeResult
    top: HorizontalEdgeResult
    bottom: HorizontalEdgeResult
    gutter_confirmed: bool | None = None


@dataclass
class CropResult:
    """Outcome of processing one leaf.

    Attributes:
        box: Refined crop box in the turned, deskewed full-resolution frame
        angle: Deskew angle applied before refinement (degrees, clockwise)
        confidence: Confidence of the estimator that supplied the angle
        skew_mode: "text" or "edge"
        coarse: Reduced-resolution detection results
        width: Width of the turned full-resolution image
        height: Height of the turned full-resolution image
        overlay_path: Where the crop overlay was written, if anywhere
        debug_files: Debug artefacts written
    """

    box: CropBox
    angle: float
    confidence: float
    skew_mode: str
    coarse: CoarseDetection
    width: int
    height: int
    overlay_path: Path | None = None
    debug_files: list[Path] = field(default_factory=list)


class LeafCropper:
    """Detects the crop box and skew of photographed book leaves.

    Attributes:
        direction: Quarter turn applied to every input image
        orientation: Mirroring transform derived from the direction
        config: Detection parameters
    """

    def __init__(
        self,
        direction: RotationDirection | int,
        config: CropConfig | None = None,
        rotate: RotateFn = rotate_by_angle,
    ) -> None:
        """Initialize the cropper.

        Args:
            direction: Quarter turn that brings the leaf upright
            config: Detection parameters (defaults when omitted)
            rotate: Rotation operator used by every sweep

        Raises:
            UnsupportedConfigurationError: For RotationDirection.NONE
        """
        self.orientation = LeafOrientation.from_direction(direction)
        self.direction = self.orientation.direction
        self.config = (config or CropConfig()).validate()
        self._rotate = rotate

    # ── Coarse detection ────────────────────────────────────────────

    def detect_coarse_box(self, gray: np.ndarray) -> CoarseDetection:
        """Find all four page edges on a turned, reduced grayscale buffer.

        Args:
            gray: Turned grayscale buffer (binding on the side given by
                the rotation direction)

        Returns:
            CoarseDetection with a complete box in the same coordinates
        """
        cfg = self.config
        w = gray.shape[1]
        view = self.orientation.view(gray)

        gutter = None
        if cfg.confirm_gutter:
            gutter = confirm_gutter(view, cfg)
            logger.info(f"Gutter confirmation: {'found' if gutter else 'not found'}")

        binding = find_binding_edge(view, cfg, self._rotate)
        logger.info(
            f"Binding edge at {binding.edge} (angle {binding.angle:+.2f}°, "
            f"threshold {binding.threshold}, {binding.dark_lines} dark lines)"
        )
        top = find_horizontal_edge(view, EdgeSide.TOP, binding.edge, cfg, self._rotate)
        bottom = find_horizontal_edge(view, EdgeSide.BOTTOM, binding.edge, cfg, self._rotate)
        outer = find_outer_edge(view, cfg, self._rotate)

        to_col = self.orientation.column_to_source
        to_angle = self.orientation.angle_to_source
        box = CropBox(top=top.edge, bottom=bottom.edge, threshold=binding.threshold)
        box.top_angle = to_angle(top.angle)
        box.bottom_angle = to_angle(bottom.angle)
        if self.orientation.binding_on_left:
            box.left, box.left_angle = binding.edge, binding.angle
            box.right, box.right_angle = outer.edge, outer.angle
        else:
            box.left, box.left_angle = to_col(outer.edge, w), to_angle(outer.angle)
            box.right, box.right_angle = to_col(binding.edge, w), to_angle(binding.angle)
        box.history.append("coarse")

        logger.info(
            f"Coarse box: left={box.left} right={box.right} top={box.top} bottom={box.bottom}"
        )
        return CoarseDetection(
            box=box, binding=binding, outer=outer, top=top, bottom=bottom, gutter_confirmed=gutter
        )

    # ── Skew ────────────────────────────────────────────────────────

    def choose_skew(
        self, binary_page: np.ndarray, reduced_binary: np.ndarray, coarse_rect: Rectangle
    ) -> tuple[float, float, str]:
        """Pick the deskew angle: text skew if reliable, else edge skew.

        Args:
            binary_page: Full-resolution page clip, 1 for ink
            reduced_binary: Reduced turned buffer binarised at the same threshold
            coarse_rect: Coarse box in reduced coordinates

        Returns:
            ``(angle, confidence, mode)``

        Raises:
            SkewEstimateError: If neither estimate is reliable
        """
        cfg = self.config
        text: TextSkew | None = None
        try:
            text = estimate_text_skew(binary_page, cfg)
        except SkewEstimateError as e:
            logger.info(f"Text skew unavailable: {e}")

        if text is not None and text.confidence >= cfg.min_text_skew_confidence:
            logger.info(f"skewMode: text (angle {text.angle:+.2f}°, conf {text.confidence:.2f})")
            return text.angle, text.confidence, "text"

        edge: SkewEstimate = estimate_edge_skew(reduced_binary, coarse_rect, cfg, self._rotate)
        if edge.confidence < cfg.min_edge_skew_confidence:
            raise SkewEstimateError("neither text nor edge skew is reliable", edge.confidence)

        logger.info(f"skewMode: edge (angle {edge.angle:+.2f}°, conf {edge.confidence:.2f})")
        return edge.angle, edge.confidence, "edge"

    # ── Full pipeline ───────────────────────────────────────────────

    def _load_gray(self, path: Path, reduction: int) -> np.ndarray:
        img = rotate90(decode(path, reduction), self.direction)
        return to_grayscale(img, self.config.gray_weights)

    def process_file(
        self,
        path: str | Path,
        output_path: str | Path | None = None,
        debug_dir: str | Path | None = None,
    ) -> CropResult:
        """Detect, deskew and refine the crop box of one leaf image.

        Args:
            path: Input image
            output_path: Where to write the turned, deskewed image with
                the crop box drawn on it
            debug_dir: Directory receiving the reduced grey image, the
                binarised page and the crop overlay

        Returns:
            CropResult
        """
        cfg = self.config
        path = Path(path)
        debug_files: list[Path] = []
        if debug_dir is not None:
            debug_dir = Path(debug_dir)
            debug_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Processing {path.name} (direction {int(self.direction)})")

        small = self._load_gray(path, cfg.reduction_factor)
        coarse = self.detect_coarse_box(small)
        coarse_rect = coarse.box.as_rectangle()
        threshold = coarse.binding.threshold
        reduced_binary = threshold_to_binary(small, threshold)
        if debug_dir is not None:
            debug_files.append(encode(small, debug_dir / DEBUG_GRAY_NAME))
        del small

        full = self._load_gray(path, 1)
        h, w = full.shape
        box = replace(coarse.box, history=list(coarse.box.history))
        box.scale(cfg.reduction_factor).clamp(w, h)
        logger.debug(f"Scaled box: {box.edges()}")

        page_rect = Rectangle(box.left, box.right + 1, box.top, box.bottom + 1)
        binary_page = threshold_to_binary(clip(full, page_rect), threshold)
        if debug_dir is not None:
            debug_files.append(encode(binary_page * 255, debug_dir / DEBUG_BINARY_NAME))

        angle, confidence, mode = self.choose_skew(binary_page, reduced_binary, coarse_rect)
        del binary_page, reduced_binary

        deskewed = rotate_by_angle(full, angle)
        del full

        if cfg.refine_mode == "variance":
            adjust_crop_box(deskewed, box, cfg.refine_radius, cfg)
        elif cfg.refine_mode == "block":
            adjust_crop_box_by_variance(deskewed, box, angle, self.orientation, cfg)
        del deskewed
        logger.info(
            f"Refined box: left={box.left} right={box.right} top={box.top} bottom={box.bottom}"
        )

        result = CropResult(
            box=box,
            angle=angle,
            confidence=confidence,
            skew_mode=mode,
            coarse=coarse,
            width=w,
            height=h,
            debug_files=debug_files,
        )

        if output_path is not None or debug_dir is not None:
            overlay = self.render_overlay(path, box, angle)
            if output_path is not None:
                result.overlay_path = encode(overlay, output_path)
            if debug_dir is not None:
                debug_files.append(encode(overlay, debug_dir / DEBUG_CROP_NAME))

        return result

    def render_overlay(self, path: Path, box: CropBox, angle: float) -> np.ndarray:
        """Turn and deskew the colour image, then outline the crop box on it."""
        img = rotate_by_angle(rotate90(decode(path), self.direction), angle)
        return draw_rectangle_overlay(
            img,
            box.as_rectangle(),
            line_width=self.config.overlay_line_width,
            color=self.config.overlay_color,
        )
