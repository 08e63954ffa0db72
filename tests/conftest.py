"""Pytest configuration for leafcrop tests.

Provides synthetic grayscale buffers and leaf photographs shared across
test modules. Every buffer is built from integer-aligned rectangles so
that expected edge positions can be derived by hand.
"""

import cv2
import numpy as np
import pytest

# ── Synthetic leaf photograph ──────────────────────────────────────
#
# Upright layout (2400 x 3200), every boundary a multiple of 8 so that the
# 1/8 reduced decode reproduces the same layout exactly:
#   background 40 everywhere
#   binding shadow 10 at columns 160..199, full height
#   page 230 at columns 200..1999, rows 240..2959
#   text bars 20 at columns 400..1799, rows 832..2319, 16 px every 48 px

LEAF_WIDTH = 2400
LEAF_HEIGHT = 3200


def make_upright_leaf() -> np.ndarray:
    """Grayscale upright leaf with the binding on the left."""
    img = np.full((LEAF_HEIGHT, LEAF_WIDTH), 40, dtype=np.uint8)
    img[:, 160:200] = 10
    img[240:2960, 200:2000] = 230
    for y in range(832, 2320, 48):
        img[y : y + 16, 400:1800] = 20
    return img


@pytest.fixture
def stripe_page():
    """800x1000 white buffer with a black binding stripe at columns 80..99."""
    gray = np.full((1000, 800), 255, dtype=np.uint8)
    gray[:, 80:100] = 0
    return gray


@pytest.fixture
def flat_gray():
    """800x1000 buffer of constant luma."""
    return np.full((1000, 800), 128, dtype=np.uint8)


@pytest.fixture
def leaf_file(tmp_path):
    """PNG of the synthetic leaf turned a quarter counterclockwise.

    Processing it with RotationDirection.CLOCKWISE restores the upright
    layout with the binding on the left.
    """
    gray = np.rot90(make_upright_leaf(), 1)
    path = tmp_path / "leaf.png"
    cv2.imwrite(str(path), cv2.cvtColor(np.ascontiguousarray(gray), cv2.COLOR_GRAY2BGR))
    return path


@pytest.fixture
def mirrored_leaf_file(tmp_path):
    """PNG of the mirrored leaf (binding on the right) turned a quarter clockwise."""
    gray = np.rot90(make_upright_leaf()[:, ::-1], -1)
    path = tmp_path / "leaf_mirrored.png"
    cv2.imwrite(str(path), cv2.cvtColor(np.ascontiguousarray(gray), cv2.COLOR_GRAY2BGR))
    return path
