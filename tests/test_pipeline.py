"""End-to-end tests for LeafCropper on synthetic leaf photographs."""

import cv2
import numpy as np
import pytest

from conftest import make_upright_leaf
from leafcrop.services.crop_config import CropConfig
from leafcrop.services.imaging import rotate_by_angle
from leafcrop.services.models import Rectangle, RotationDirection
from leafcrop.services.pipeline import LeafCropper
from leafcrop.utils.exceptions import (
    ImageReadError,
    SkewEstimateError,
    UnsupportedConfigurationError,
)


def _reduced_leaf():
    """The upright leaf as seen by coarse detection (1/8 decode)."""
    return np.ascontiguousarray(make_upright_leaf()[::8, ::8])


def _reduced_lines(angle=0.0):
    """Binarised 300x400 reduced page with horizontal rules turned by ``angle``."""
    gray = np.zeros((400, 300), dtype=np.uint8)
    for y in range(40, 360, 20):
        gray[y : y + 10, 30:270] = 255
    return (rotate_by_angle(gray, angle) > 127).astype(np.uint8)


# ── Construction ─────────────────────────────────────────────────


class TestLeafCropperInit:
    def test_no_turn_is_unsupported(self):
        with pytest.raises(UnsupportedConfigurationError):
            LeafCropper(RotationDirection.NONE)

    def test_accepts_plain_int(self):
        cropper = LeafCropper(-1)
        assert cropper.direction == RotationDirection.COUNTERCLOCKWISE
        assert cropper.orientation.mirrored

    def test_config_is_validated(self):
        from leafcrop.utils.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            LeafCropper(1, CropConfig(refine_mode="sharpest"))


# ── Coarse detection ─────────────────────────────────────────────


class TestDetectCoarseBox:
    def test_binding_on_left(self):
        coarse = LeafCropper(RotationDirection.CLOCKWISE).detect_coarse_box(_reduced_leaf())
        assert coarse.box.edges() == (24, 249, 29, 369)
        assert coarse.box.threshold == 120
        assert coarse.gutter_confirmed is None
        assert coarse.box.history == ["coarse"]

    def test_binding_on_right_maps_back(self):
        mirrored = np.ascontiguousarray(_reduced_leaf()[:, ::-1])
        coarse = LeafCropper(RotationDirection.COUNTERCLOCKWISE).detect_coarse_box(mirrored)
        assert coarse.box.left == 299 - 249
        assert coarse.box.right == 299 - 24
        assert (coarse.box.top, coarse.box.bottom) == (29, 369)

    def test_gutter_diagnostic_runs_when_enabled(self):
        cropper = LeafCropper(1, CropConfig(confirm_gutter=True))
        coarse = cropper.detect_coarse_box(_reduced_leaf())
        assert coarse.gutter_confirmed in (True, False)


# ── Skew selection ───────────────────────────────────────────────


class TestChooseSkew:
    def test_prefers_text(self):
        leaf = make_upright_leaf()
        binary_page = (leaf[240:2960, 200:2000] < 120).astype(np.uint8)
        reduced_binary = (_reduced_leaf() < 120).astype(np.uint8)
        angle, confidence, mode = LeafCropper(1).choose_skew(
            binary_page, reduced_binary, Rectangle(24, 249, 29, 369)
        )
        assert mode == "text"
        assert abs(angle) < 0.1
        assert confidence >= 1.0

    def test_unreliable_everywhere_raises(self):
        blank_page = np.zeros((400, 300), dtype=np.uint8)
        blank_reduced = np.zeros((400, 300), dtype=np.uint8)
        with pytest.raises(SkewEstimateError):
            LeafCropper(1).choose_skew(blank_page, blank_reduced, Rectangle(24, 249, 29, 369))

    def test_falls_back_to_edge_skew_without_text(self):
        blank_page = np.zeros((2720, 1800), dtype=np.uint8)
        angle, confidence, mode = LeafCropper(1).choose_skew(
            blank_page, _reduced_lines(0.5), Rectangle(24, 249, 29, 369)
        )
        assert mode == "edge"
        assert angle == pytest.approx(-0.5, abs=0.15)
        assert confidence >= 1.05

    def test_flat_edge_sweep_is_rejected(self):
        # Every swept angle scores exactly the baseline: confidence 1.0
        cropper = LeafCropper(1, rotate=lambda img, angle: img.copy())
        blank_page = np.zeros((2720, 1800), dtype=np.uint8)
        with pytest.raises(SkewEstimateError, match="confidence=1.000"):
            cropper.choose_skew(blank_page, _reduced_lines(), Rectangle(24, 249, 29, 369))


# ── process_file ─────────────────────────────────────────────────


class TestProcessFile:
    def test_refined_box(self, leaf_file):
        result = LeafCropper(RotationDirection.CLOCKWISE).process_file(leaf_file)
        assert (result.width, result.height) == (2400, 3200)
        assert result.skew_mode == "text"
        assert abs(result.angle) < 0.1
        box = result.box
        assert abs(box.left - 200) <= 8
        assert 1900 < box.right <= 2000
        assert abs(box.top - 240) <= 8
        assert 2800 < box.bottom <= 2960
        assert box.history[-1] == "adjusted r=40"

    def test_coarse_box_is_left_untouched(self, leaf_file):
        result = LeafCropper(1).process_file(leaf_file)
        assert result.coarse.box.edges() == (24, 249, 29, 369)
        assert result.box is not result.coarse.box

    def test_mirrored_leaf(self, mirrored_leaf_file):
        result = LeafCropper(RotationDirection.COUNTERCLOCKWISE).process_file(mirrored_leaf_file)
        assert result.coarse.box.left == 50
        assert result.coarse.box.right == 275
        assert 2100 < result.box.right <= 2208
        assert result.box.left < 500

    def test_no_refinement_keeps_scaled_box(self, leaf_file):
        result = LeafCropper(1, CropConfig(refine_mode="none")).process_file(leaf_file)
        assert result.box.edges() == (192, 1992, 232, 2952)

    def test_block_refinement_keeps_rows(self, leaf_file):
        result = LeafCropper(1, CropConfig(refine_mode="block")).process_file(leaf_file)
        assert (result.box.top, result.box.bottom) == (232, 2952)
        assert result.box.history[-1].startswith("block variance")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageReadError):
            LeafCropper(1).process_file(tmp_path / "missing.jpg")

    def test_writes_overlay(self, leaf_file, tmp_path):
        out = tmp_path / "crop.jpg"
        result = LeafCropper(1).process_file(leaf_file, output_path=out)
        assert result.overlay_path == out
        overlay = cv2.imread(str(out))
        assert overlay.shape == (3200, 2400, 3)

    def test_writes_debug_files(self, leaf_file, tmp_path):
        debug_dir = tmp_path / "debug"
        result = LeafCropper(1).process_file(leaf_file, debug_dir=debug_dir)
        names = sorted(p.name for p in result.debug_files)
        assert names == ["outbin.png", "outcrop.jpg", "outgray.jpg"]
        for p in result.debug_files:
            assert p.exists()
        gray = cv2.imread(str(debug_dir / "outgray.jpg"), cv2.IMREAD_GRAYSCALE)
        assert gray.shape == (400, 300)
        assert result.overlay_path is None
