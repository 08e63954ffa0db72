"""
Data types shared by the crop detection stages.

Buffers themselves are plain ``numpy`` uint8 arrays indexed ``[row, col]``;
this module only holds the small value types threaded between stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from leafcrop.utils.exceptions import PreconditionError


class RotationDirection(IntEnum):
    """Quarter turn applied to the photographed leaf before detection.

    The value matches the command-line argument. After a clockwise turn the
    binding sits on the left of the image, after a counterclockwise turn on
    the right.
    """

    COUNTERCLOCKWISE = -1
    NONE = 0
    CLOCKWISE = 1


class EdgeSide(Enum):
    """Which horizontal page edge a detector is looking for."""

    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Rectangle:
    """Integer rectangle ``(left, right, top, bottom)``.

    Whether ``right``/``bottom`` are inclusive is documented by each
    function that consumes a rectangle.
    """

    left: int
    right: int
    top: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def require_within(self, width: int, height: int, function: str) -> None:
        """Fail fast unless the rectangle is ordered and inside a buffer."""
        if not (0 <= self.left < self.right < width):
            raise PreconditionError(
                function, f"columns [{self.left}, {self.right}] not inside width {width}"
            )
        if not (0 <= self.top < self.bottom < height):
            raise PreconditionError(
                function, f"rows [{self.top}, {self.bottom}] not inside height {height}"
            )


@dataclass(frozen=True)
class EdgeCandidate:
    """A detected column or row paired with its SAD magnitude."""

    index: int
    score: int


@dataclass(frozen=True)
class VarianceCandidate:
    """The column or row with the least variance inside a search window."""

    index: int
    variance: float


@dataclass(frozen=True)
class AngleSample:
    """Score of one objective evaluated at one rotation angle (degrees)."""

    angle: float
    score: float


@dataclass
class CropBox:
    """Four page edges plus the rotation angle in effect when each was measured.

    Created empty, filled by the edge detectors in reduced-resolution
    coordinates, rescaled, then refined in place on the full-resolution
    buffer. ``right`` and ``bottom`` are the last page column/row.
    """

    left: int | None = None
    right: int | None = None
    top: int | None = None
    bottom: int | None = None
    left_angle: float = 0.0
    right_angle: float = 0.0
    top_angle: float = 0.0
    bottom_angle: float = 0.0
    threshold: int | None = None
    history: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return None not in (self.left, self.right, self.top, self.bottom)

    def as_rectangle(self) -> Rectangle:
        """Return the box as a Rectangle, failing if any edge is missing."""
        if not self.is_complete:
            raise PreconditionError("CropBox.as_rectangle", f"incomplete box {self.edges()}")
        return Rectangle(self.left, self.right, self.top, self.bottom)

    def edges(self) -> tuple[int | None, int | None, int | None, int | None]:
        return (self.left, self.right, self.top, self.bottom)

    def scale(self, factor: int) -> CropBox:
        """Multiply every edge by ``factor`` in place (reduced → full resolution)."""
        rect = self.as_rectangle()
        self.left = rect.left * factor
        self.right = rect.right * factor
        self.top = rect.top * factor
        self.bottom = rect.bottom * factor
        self.history.append(f"scaled x{factor}")
        return self

    def clamp(self, width: int, height: int) -> CropBox:
        """Clamp every edge into a ``width`` x ``height`` buffer in place."""
        rect = self.as_rectangle()
        self.left = min(max(rect.left, 0), width - 2)
        self.right = min(max(rect.right, self.left + 1), width - 1)
        self.top = min(max(rect.top, 0), height - 2)
        self.bottom = min(max(rect.bottom, self.top + 1), height - 1)
        return self
