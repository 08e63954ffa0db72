#!/usr/bin/env python3
"""
LeafCrop - Configuration Module

This module contains the application-level constants. Tunable detection
parameters live in :mod:`leafcrop.services.crop_config`.
"""

import logging
from typing import Final

# ============================================================================
# Application Constants
# ============================================================================

APP_NAME: Final[str] = "LeafCrop"
APP_VERSION: Final[str] = "1.0.0"
APP_DESCRIPTION: Final[str] = "Crop-box and deskew detection for photographed book leaves"


# ============================================================================
# Debug Artefacts
# ============================================================================

DEBUG_GRAY_NAME: Final[str] = "outgray.jpg"
DEBUG_BINARY_NAME: Final[str] = "outbin.png"
DEBUG_CROP_NAME: Final[str] = "outcrop.jpg"


# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL: int = logging.INFO
LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME: Final[str] = "leafcrop"
