"""
Image operations consumed by the crop engine as black boxes.

Decoding/encoding, grey conversion, quarter and arbitrary rotation,
clipping, global thresholding and the debug rectangle overlay. None of
them mutate their input; each returns a new buffer owned by the caller.

Rotation angles are in degrees, positive meaning clockwise, and pixels
brought in from outside the source frame are filled with black.
"""

import logging
import os
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, ImageDraw

from leafcrop.services.models import Rectangle, RotationDirection
from leafcrop.utils.exceptions import ImageReadError, ImageWriteError, PreconditionError

logger = logging.getLogger(__name__)

_REDUCED_READ_FLAGS = {
    1: cv2.IMREAD_COLOR,
    2: cv2.IMREAD_REDUCED_COLOR_2,
    4: cv2.IMREAD_REDUCED_COLOR_4,
    8: cv2.IMREAD_REDUCED_COLOR_8,
}


def require_gray(gray: np.ndarray, function: str) -> tuple[int, int]:
    """Validate a grayscale buffer and return its ``(height, width)``."""
    if not isinstance(gray, np.ndarray) or gray.ndim != 2 or gray.dtype != np.uint8:
        raise PreconditionError(function, "expected a 2-D uint8 grayscale buffer")
    h, w = gray.shape
    if h < 2 or w < 2:
        raise PreconditionError(function, f"buffer too small ({w}x{h})")
    return h, w


def decode(path: str | Path, reduction: int = 1) -> np.ndarray:
    """Read an image as a BGR buffer, optionally reduced 2x, 4x or 8x at decode time.

    Args:
        path: Image file path
        reduction: Decode reduction factor (1, 2, 4 or 8)

    Returns:
        BGR uint8 image

    Raises:
        ImageReadError: If the file is missing or cannot be decoded
    """
    if reduction not in _REDUCED_READ_FLAGS:
        raise PreconditionError("decode", f"unsupported reduction {reduction}")

    path = str(path)
    if not os.path.isfile(path):
        raise ImageReadError(path, "file not found")

    img = cv2.imread(path, _REDUCED_READ_FLAGS[reduction])
    if img is None:
        raise ImageReadError(path, "unsupported or corrupted image data")

    logger.debug(f"Decoded {path} at 1/{reduction}: {img.shape[1]}×{img.shape[0]} px")
    return img


def encode(img: np.ndarray, path: str | Path) -> Path:
    """Write an image; the format follows the file extension."""
    path = Path(path)
    try:
        ok = cv2.imwrite(str(path), img)
    except cv2.error as e:
        raise ImageWriteError(str(path), str(e)) from e
    if not ok:
        raise ImageWriteError(str(path), "encoder rejected the image")
    return path


def to_grayscale(
    img: np.ndarray, weights: tuple[float, float, float] = (0.30, 0.60, 0.10)
) -> np.ndarray:
    """Convert a BGR image to luma with explicit red, green and blue weights.

    Weights are normalised to sum to one; results are rounded half up.
    """
    if img.ndim == 2:
        return img.copy()

    rw, gw, bw = weights
    total = rw + gw + bw
    b = img[..., 0].astype(np.float64)
    g = img[..., 1].astype(np.float64)
    r = img[..., 2].astype(np.float64)
    luma = (r * rw + g * gw + b * bw) / total
    return np.clip(np.floor(luma + 0.5), 0, 255).astype(np.uint8)


def rotate90(img: np.ndarray, direction: RotationDirection) -> np.ndarray:
    """Rotate by a quarter turn in the given direction (copy for NONE)."""
    if direction == RotationDirection.CLOCKWISE:
        return cv2.rotate(img, cv2.ROTATE_90_CLOCKWISE)
    if direction == RotationDirection.COUNTERCLOCKWISE:
        return cv2.rotate(img, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return img.copy()


def rotate_by_angle(img: np.ndarray, angle: float) -> np.ndarray:
    """Rotate about the image centre, keeping original dimensions.

    Positive angles turn the content clockwise. Uncovered pixels are
    filled with black so later stages can exclude them geometrically.
    Resampling is bilinear rather than area-mapped.

    Args:
        img: Input image
        angle: Rotation angle in degrees

    Returns:
        Rotated image at original dimensions
    """
    if angle == 0:
        return img.copy()

    h, w = img.shape[:2]
    center = (w // 2, h // 2)
    # OpenCV treats positive angles as counterclockwise
    M = cv2.getRotationMatrix2D(center, -angle, 1.0)
    return cv2.warpAffine(
        img,
        M,
        (w, h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )


def clip(img: np.ndarray, rect: Rectangle) -> np.ndarray:
    """Copy the half-open region ``[left, right) x [top, bottom)``."""
    h, w = img.shape[:2]
    if not (0 <= rect.left < rect.right <= w and 0 <= rect.top < rect.bottom <= h):
        raise PreconditionError("clip", f"{rect} outside {w}x{h} image")
    return img[rect.top : rect.bottom, rect.left : rect.right].copy()


def threshold_to_binary(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Return a 0/1 buffer with 1 where luma is below ``threshold`` (ink)."""
    return (gray < threshold).astype(np.uint8)


def draw_rectangle_overlay(
    img: np.ndarray,
    rect: Rectangle,
    line_width: int = 10,
    color: tuple[int, int, int] = (255, 0, 0),
) -> np.ndarray:
    """Render an outlined rectangle on a copy of a BGR or grey image.

    Args:
        img: Source image (BGR or grayscale)
        rect: Rectangle with inclusive right/bottom
        line_width: Outline width in pixels
        color: RGB outline colour

    Returns:
        New BGR image with the outline drawn
    """
    if img.ndim == 2:
        rgb = cv2.cvtColor(img, cv2.COLOR_GRAY2RGB)
    else:
        rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

    canvas = Image.fromarray(rgb)
    draw = ImageDraw.Draw(canvas)
    draw.rectangle(
        [(rect.left, rect.top), (rect.right, rect.bottom)],
        outline=tuple(color),
        width=line_width,
    )
    return cv2.cvtColor(np.asarray(canvas), cv2.COLOR_RGB2BGR)
