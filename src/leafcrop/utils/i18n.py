#!/usr/bin/env python3
"""
LeafCrop - Internationalization Module

This module initializes gettext for the command-line messages.
"""

import gettext
import os
import sys
from collections.abc import Callable


def _dummy_translate(text: str) -> str:
    """Fallback translation function that returns the original text.

    Args:
        text: The text to translate.

    Returns:
        The original text unchanged.
    """
    return text


# Initialize _ with the fallback function
_: Callable[[str], str] = _dummy_translate

try:
    locale_dirs = [
        "/usr/share/locale",
        os.path.join(sys.prefix, "share", "locale"),
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "locale"),
    ]

    for locale_dir in locale_dirs:
        if os.path.exists(locale_dir):
            gettext.bindtextdomain("leafcrop", locale_dir)

    gettext.textdomain("leafcrop")
    _ = gettext.gettext

except OSError:
    # Keep using the dummy function if the locale setup is unavailable
    pass
