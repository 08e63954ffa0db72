"""Tests for crop box value types and leaf orientation."""

import numpy as np
import pytest

from leafcrop.services.models import CropBox, Rectangle, RotationDirection
from leafcrop.services.orientation import LeafOrientation
from leafcrop.utils.exceptions import PreconditionError, UnsupportedConfigurationError


class TestRectangle:
    """Tests for Rectangle."""

    def test_size(self):
        rect = Rectangle(10, 30, 5, 45)
        assert (rect.width, rect.height) == (20, 40)

    def test_require_within_accepts_inside(self):
        Rectangle(0, 99, 0, 49).require_within(100, 50, "f")

    @pytest.mark.parametrize(
        "rect",
        [
            Rectangle(-1, 10, 0, 10),
            Rectangle(10, 10, 0, 10),
            Rectangle(0, 100, 0, 10),
            Rectangle(0, 10, 20, 10),
            Rectangle(0, 10, 0, 50),
        ],
    )
    def test_require_within_rejects(self, rect):
        with pytest.raises(PreconditionError):
            rect.require_within(100, 50, "f")


class TestCropBox:
    """Tests for CropBox."""

    def test_starts_empty(self):
        box = CropBox()
        assert not box.is_complete
        assert box.edges() == (None, None, None, None)

    def test_incomplete_box_has_no_rectangle(self):
        with pytest.raises(PreconditionError):
            CropBox(left=1, right=2, top=3).as_rectangle()

    def test_scale_in_place(self):
        box = CropBox(left=24, right=249, top=29, bottom=369)
        result = box.scale(8)
        assert result is box
        assert box.edges() == (192, 1992, 232, 2952)
        assert box.history == ["scaled x8"]

    def test_clamp(self):
        box = CropBox(left=-5, right=500, top=-1, bottom=400)
        box.clamp(400, 300)
        assert box.edges() == (0, 399, 0, 299)

    def test_clamp_keeps_order(self):
        box = CropBox(left=450, right=420, top=10, bottom=20)
        box.clamp(400, 300)
        assert box.left < box.right


class TestLeafOrientation:
    """Tests for LeafOrientation."""

    def test_clockwise_keeps_view(self):
        orientation = LeafOrientation.from_direction(RotationDirection.CLOCKWISE)
        gray = np.arange(12, dtype=np.uint8).reshape(3, 4)
        assert orientation.binding_on_left
        assert orientation.view(gray) is gray
        assert orientation.column_to_source(5, 10) == 5
        assert orientation.angle_to_source(0.35) == 0.35

    def test_counterclockwise_mirrors(self):
        orientation = LeafOrientation.from_direction(-1)
        gray = np.arange(12, dtype=np.uint8).reshape(3, 4)
        view = orientation.view(gray)
        assert not orientation.binding_on_left
        np.testing.assert_array_equal(view[:, 0], gray[:, 3])
        assert view.flags["C_CONTIGUOUS"]
        assert orientation.column_to_source(0, 4) == 3
        assert orientation.angle_to_source(0.35) == -0.35

    def test_zero_angle_stays_positive_zero(self):
        orientation = LeafOrientation.from_direction(RotationDirection.COUNTERCLOCKWISE)
        assert str(orientation.angle_to_source(0.0)) == "0.0"

    def test_no_turn_is_unsupported(self):
        with pytest.raises(UnsupportedConfigurationError):
            LeafOrientation.from_direction(RotationDirection.NONE)

    def test_unknown_direction_is_unsupported(self):
        with pytest.raises(UnsupportedConfigurationError):
            LeafOrientation.from_direction(2)
