"""
LeafCrop - Custom Exceptions Module

This module defines the exception classes raised by the crop detection
pipeline. The hierarchy mirrors the failure taxonomy of the engine:
contract breaches between internal functions, detectors that found no
candidate, unsupported leaf configurations and an unreliable skew estimate.
"""


class LeafCropError(Exception):
    """Base exception for all LeafCrop errors.

    All custom exceptions should inherit from this class to allow
    catching any LeafCrop-specific error.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional technical details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class PreconditionError(LeafCropError, ValueError):
    """Raised when a malformed range or rectangle is passed between stages.

    This is a programming error, never a recoverable condition.
    """

    def __init__(self, function: str, reason: str) -> None:
        """Initialize the exception.

        Args:
            function: Name of the function whose contract was violated
            reason: Description of the violated condition
        """
        self.function = function
        self.reason = reason
        super().__init__(f"Precondition failed in {function}: {reason}")


class DetectionError(LeafCropError):
    """Raised when a detection stage produced no usable candidate."""

    def __init__(self, stage: str, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            stage: Name of the detection stage that failed
            reason: Optional reason for the failure
        """
        self.stage = stage
        self.reason = reason

        msg = f"Detection failed in {stage}"
        if reason:
            msg += f": {reason}"

        super().__init__(msg, details=f"stage={stage}")


class EdgeNotFoundError(DetectionError):
    """Raised when a page edge could not be located."""

    def __init__(self, edge: str, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            edge: Which edge was searched for (binding, outer, top, ...)
            reason: Optional reason for the failure
        """
        self.edge = edge
        super().__init__(f"{edge} edge", reason)


class UnsupportedConfigurationError(LeafCropError):
    """Raised when the requested leaf configuration is not implemented."""

    def __init__(self, setting: str, value: object) -> None:
        """Initialize the exception.

        Args:
            setting: Name of the unsupported setting
            value: The rejected value
        """
        self.setting = setting
        self.value = value
        super().__init__(
            f"Unsupported {setting}: {value!r}", details=f"setting={setting}, value={value!r}"
        )


class SkewEstimateError(LeafCropError):
    """Raised when no reliable skew angle could be established."""

    def __init__(self, reason: str, confidence: float | None = None) -> None:
        """Initialize the exception.

        Args:
            reason: Why the estimate was rejected
            confidence: Optional confidence value reported by the estimator
        """
        self.reason = reason
        self.confidence = confidence

        details = None
        if confidence is not None:
            details = f"confidence={confidence:.3f}"

        super().__init__(f"Skew estimation failed: {reason}", details=details)


class ImageReadError(LeafCropError):
    """Raised when an input image is missing or cannot be decoded."""

    def __init__(self, file_path: str, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            file_path: Path to the image file
            reason: Optional reason why the image could not be read
        """
        self.file_path = file_path
        self.reason = reason
        msg = f"Cannot read image: {file_path}"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg, details=f"path={file_path}")


class ImageWriteError(LeafCropError):
    """Raised when an output image cannot be written."""

    def __init__(self, file_path: str, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            file_path: Destination path
            reason: Optional reason for the failure
        """
        self.file_path = file_path
        self.reason = reason
        msg = f"Cannot write image: {file_path}"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg, details=f"path={file_path}")


class ConfigurationError(LeafCropError):
    """Raised when there's a configuration-related error."""

    def __init__(self, setting_name: str | None = None, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            setting_name: Optional name of the problematic setting
            reason: Optional reason for the error
        """
        self.setting_name = setting_name
        self.reason = reason

        if setting_name:
            msg = f"Configuration error for '{setting_name}'"
        else:
            msg = "Configuration error"

        if reason:
            msg += f": {reason}"

        super().__init__(msg)


# Exception hierarchy summary:
# LeafCropError (base)
# ├── PreconditionError (also a ValueError)
# ├── DetectionError
# │   └── EdgeNotFoundError
# ├── UnsupportedConfigurationError
# ├── SkewEstimateError
# ├── ImageReadError
# ├── ImageWriteError
# └── ConfigurationError
