"""
Leaf orientation: which side of the turned image holds the binding.

The edge detectors are written once for a binding on the left. A leaf
with the binding on the right is handled by mirroring the buffer, running
the same detectors, and mapping columns and angles back.
"""

from dataclasses import dataclass

import numpy as np

from leafcrop.services.models import RotationDirection
from leafcrop.utils.exceptions import UnsupportedConfigurationError


@dataclass(frozen=True)
class LeafOrientation:
    """Mirroring transform between a source buffer and the detector view."""

    direction: RotationDirection
    mirrored: bool

    @classmethod
    def from_direction(cls, direction: RotationDirection | int) -> "LeafOrientation":
        """Build the orientation for a quarter-turn direction.

        Raises:
            UnsupportedConfigurationError: For RotationDirection.NONE or an
                unknown value
        """
        try:
            direction = RotationDirection(direction)
        except ValueError:
            raise UnsupportedConfigurationError("rotation direction", direction) from None

        if direction == RotationDirection.NONE:
            raise UnsupportedConfigurationError("rotation direction", int(direction))
        return cls(direction=direction, mirrored=direction == RotationDirection.COUNTERCLOCKWISE)

    @property
    def binding_on_left(self) -> bool:
        return not self.mirrored

    def view(self, gray: np.ndarray) -> np.ndarray:
        """Return the buffer as the detectors see it (binding on the left)."""
        if not self.mirrored:
            return gray
        return np.ascontiguousarray(gray[:, ::-1])

    def column_to_source(self, column: int, width: int) -> int:
        """Map a column of the detector view back to the source buffer."""
        return width - 1 - column if self.mirrored else column

    def angle_to_source(self, angle: float) -> float:
        """Map a rotation angle of the detector view back to the source buffer."""
        return -angle + 0.0 if self.mirrored else angle
