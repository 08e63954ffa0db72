"""
LeafCrop - page boundary and skew detection for photographed book leaves

This package locates the binding, outer, top and bottom edges of a
photographed leaf, estimates the rotation that deskews it and refines the
crop rectangle on the full-resolution image.
"""

__version__ = "1.0.0"
__author__ = "LeafCrop Developers"
__license__ = "GPL-2.0"


def main(argv: list[str] | None = None) -> int:
    """Run the command-line interface.

    Returns:
        The process exit code.
    """
    from leafcrop.cli import main as cli_main

    return cli_main(argv)


__all__ = ["main", "__version__", "__author__", "__license__"]
