"""Tests for the exception hierarchy."""

import pytest

from leafcrop.utils.exceptions import (
    ConfigurationError,
    DetectionError,
    EdgeNotFoundError,
    ImageReadError,
    ImageWriteError,
    LeafCropError,
    PreconditionError,
    SkewEstimateError,
    UnsupportedConfigurationError,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            PreconditionError("f", "bad range"),
            DetectionError("stage"),
            EdgeNotFoundError("binding"),
            UnsupportedConfigurationError("rotation direction", 0),
            SkewEstimateError("no text"),
            ImageReadError("/tmp/x.jpg"),
            ImageWriteError("/tmp/x.jpg"),
            ConfigurationError("key"),
        ],
    )
    def test_all_derive_from_base(self, error):
        assert isinstance(error, LeafCropError)

    def test_precondition_is_value_error(self):
        assert isinstance(PreconditionError("f", "r"), ValueError)

    def test_edge_not_found_is_detection_error(self):
        assert isinstance(EdgeNotFoundError("outer"), DetectionError)


class TestExceptionMessages:
    def test_details_in_parentheses(self):
        err = LeafCropError("Something failed", details="code=7")
        assert str(err) == "Something failed (code=7)"

    def test_no_details(self):
        assert str(LeafCropError("Plain")) == "Plain"

    def test_edge_not_found_message(self):
        err = EdgeNotFoundError("top", "no row transition")
        assert "top edge" in str(err)
        assert "no row transition" in str(err)
        assert err.edge == "top"

    def test_skew_confidence_in_details(self):
        err = SkewEstimateError("unreliable", confidence=0.5)
        assert "confidence=0.500" in str(err)

    def test_unsupported_configuration_value(self):
        err = UnsupportedConfigurationError("rotation direction", 0)
        assert err.value == 0
        assert "rotation direction" in str(err)

    def test_image_read_reason(self):
        err = ImageReadError("/tmp/leaf.jpg", "file not found")
        assert "file not found" in str(err)
        assert err.file_path == "/tmp/leaf.jpg"
