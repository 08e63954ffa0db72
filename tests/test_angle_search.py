"""Tests for the rotation sweep and its geometry margins."""

import numpy as np
import pytest

from leafcrop.services.angle_search import (
    calc_limit_left,
    calc_limit_top,
    search_edge_angle,
    sweep_angles,
    sweep_scores,
)
from leafcrop.services.crop_config import CropConfig
from leafcrop.services.edge_detectors import find_binding_edge
from leafcrop.services.imaging import rotate_by_angle
from leafcrop.services.models import EdgeCandidate


class _CountingRotate:
    """Rotation operator that records every requested angle."""

    def __init__(self):
        self.angles = []

    def __call__(self, img, angle):
        self.angles.append(angle)
        return rotate_by_angle(img, angle)


# ── sweep_angles ─────────────────────────────────────────────────


class TestSweepAngles:
    """Tests for sweep_angles."""

    def test_default_sweep_has_41_angles(self):
        angles = sweep_angles()
        assert len(angles) == 41
        assert angles[0] == -1.0
        assert angles[-1] == 1.0

    def test_even_spacing(self):
        angles = sweep_angles()
        np.testing.assert_allclose(np.diff(angles), 0.05, atol=1e-9)

    def test_contains_exact_zero(self):
        angles = sweep_angles()
        assert angles[20] == 0.0
        assert str(angles[20]) == "0.0"

    def test_custom_range(self):
        config = CropConfig(sweep_start=-0.5, sweep_stop=0.5, sweep_step=0.25)
        assert sweep_angles(config) == [-0.5, -0.25, 0.0, 0.25, 0.5]


# ── Geometry margins ─────────────────────────────────────────────


class TestCalcLimits:
    """Tests for calc_limit_left and calc_limit_top."""

    def test_zero_angle_known_off_by_one(self):
        # Truncation of the single precision half-diagonal yields 0 or 1
        assert calc_limit_left(800, 1000, 0.0) in (0, 1)
        assert calc_limit_top(800, 1000, 0.0) in (0, 1)

    def test_grows_with_angle(self):
        limits = [calc_limit_left(800, 1000, a) for a in (0.0, 0.25, 0.5, 1.0)]
        assert limits == sorted(limits)
        assert limits[-1] > limits[0]

    def test_symmetric_in_sign(self):
        for angle in (0.05, 0.5, 1.0):
            assert calc_limit_left(800, 1000, angle) == calc_limit_left(800, 1000, -angle)
            assert calc_limit_top(800, 1000, angle) == calc_limit_top(800, 1000, -angle)

    def test_one_degree_magnitude(self):
        assert 8 <= calc_limit_left(800, 1000, 1.0) <= 10
        assert 7 <= calc_limit_top(800, 1000, 1.0) <= 9

    def test_covers_black_fill(self):
        gray = np.full((1000, 800), 255, dtype=np.uint8)
        rotated = rotate_by_angle(gray, 1.0)
        limit = calc_limit_left(800, 1000, 1.0)
        # Mid-height rows never see black fill inside the margin
        assert rotated[350:650, limit:800 - limit].min() > 0


# ── search_edge_angle ────────────────────────────────────────────


class TestSearchEdgeAngle:
    """Tests for search_edge_angle."""

    def test_evaluates_every_angle(self, stripe_page):
        rotate = _CountingRotate()
        seen = []

        def objective(rotated, angle):
            seen.append(angle)
            return EdgeCandidate(index=0, score=1)

        search_edge_angle(stripe_page, sweep_angles(), objective, rotate)
        assert rotate.angles == sweep_angles()
        assert seen == sweep_angles()

    def test_first_strict_maximum_wins(self, stripe_page):
        result = search_edge_angle(
            stripe_page, sweep_angles(), lambda r, a: EdgeCandidate(index=3, score=7)
        )
        assert result.angle == -1.0
        assert result.candidate.index == 3

    def test_later_larger_score_replaces(self, stripe_page):
        result = search_edge_angle(
            stripe_page,
            sweep_angles(),
            lambda r, a: EdgeCandidate(index=1, score=100 - int(abs(a - 0.3) * 100)),
        )
        assert result.angle == pytest.approx(0.3)

    def test_no_candidate_anywhere(self, stripe_page):
        assert search_edge_angle(stripe_page, sweep_angles(), lambda r, a: None) is None

    def test_samples_record_every_angle(self, stripe_page):
        result = search_edge_angle(
            stripe_page,
            sweep_angles(),
            lambda r, a: EdgeCandidate(index=0, score=5) if a > 0 else None,
        )
        assert len(result.samples) == 41
        assert result.samples[0].score == 0.0

    def test_binding_detector_sweeps_41_angles(self, stripe_page):
        rotate = _CountingRotate()
        find_binding_edge(stripe_page, rotate=rotate)
        # Full sweep plus one rotation at the winning angle
        assert len(rotate.angles) == 42
        assert rotate.angles[:41] == sweep_angles()


class TestSweepScores:
    """Tests for sweep_scores."""

    def test_skips_none_scores(self, stripe_page):
        samples = sweep_scores(
            stripe_page, sweep_angles(), lambda r, a: None if abs(a) < 0.01 else 1.0
        )
        assert len(samples) == 40
        assert all(s.angle != 0.0 for s in samples)

    def test_objective_sees_rotated_copy(self, stripe_page):
        means = {}

        def objective(rotated, angle):
            assert rotated is not stripe_page
            means[angle] = float(rotated.mean())
            return means[angle]

        sweep_scores(stripe_page, [0.0, 1.0], objective)
        # Black fill lowers the mean of the rotated copy
        assert means[1.0] < means[0.0]
