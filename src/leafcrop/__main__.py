#!/usr/bin/env python3
"""
LeafCrop - Entry point for python -m leafcrop

This module allows the package to be run as a module:
    python -m leafcrop input.jpg 1
"""

import sys

from leafcrop import main

if __name__ == "__main__":
    sys.exit(main())
