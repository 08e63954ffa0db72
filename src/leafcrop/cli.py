#!/usr/bin/env python3
"""
LeafCrop CLI: crop box and skew detection for one photographed leaf.

Usage:
    leafcrop INPUT DIRECTION [options]

DIRECTION is the quarter turn that brings the leaf upright:
    1   clockwise (binding ends up on the left)
   -1   counterclockwise (binding ends up on the right)
    0   no turn (not supported)

Examples:
    leafcrop leaf_0001.jpg 1
    leafcrop leaf_0002.jpg -1 -o crop_0002.jpg
    leafcrop leaf_0003.jpg 1 --debug-dir /tmp/leafcrop --refine block -v
"""

import argparse
import logging
import sys
from pathlib import Path

from leafcrop.config import APP_DESCRIPTION, APP_VERSION
from leafcrop.services.crop_config import REFINE_MODES, CropConfig
from leafcrop.services.models import RotationDirection
from leafcrop.utils.exceptions import LeafCropError
from leafcrop.utils.i18n import _
from leafcrop.utils.logger import setup_logger

# ---------------------------------------------------------------------------
# Argument parser construction
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    p = argparse.ArgumentParser(
        prog="leafcrop",
        description=APP_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("input", type=Path, help=_("Input image of the leaf"))
    p.add_argument(
        "direction",
        type=int,
        choices=[int(d) for d in RotationDirection],
        help=_("Quarter turn: 1 clockwise, -1 counterclockwise, 0 none (unsupported)"),
    )
    p.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help=_("Write the deskewed image with the crop box drawn on it"),
    )
    p.add_argument(
        "--debug-dir",
        type=Path,
        default=None,
        help=_("Directory for debug images (grey, binarised page, crop overlay)"),
    )
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help=_("JSON file overriding detection parameters"),
    )
    p.add_argument(
        "--refine",
        choices=REFINE_MODES,
        default=None,
        help=_("Full-resolution refinement strategy (default: variance)"),
    )
    p.add_argument("-v", "--verbose", action="store_true", help=_("Verbose logging (DEBUG)"))
    p.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return p


def _load_config(args: argparse.Namespace) -> CropConfig:
    config = CropConfig.from_json(args.config) if args.config else CropConfig()
    if args.refine:
        config.refine_mode = args.refine
    return config.validate()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logger = setup_logger(log_level=level, logger_name="leafcrop.cli")

    if not args.input.is_file():
        print(f"Error: {args.input} not found", file=sys.stderr)
        return 1

    # Imported here so that --help stays fast
    from leafcrop.services.pipeline import LeafCropper

    try:
        config = _load_config(args)
        cropper = LeafCropper(args.direction, config)
        result = cropper.process_file(args.input, args.output, args.debug_dir)
    except LeafCropError as e:
        logger.error(f"{args.input.name}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    box = result.box
    print(f"crop: left={box.left} right={box.right} top={box.top} bottom={box.bottom}")
    print(f"angle={result.angle:.2f}")
    print(f"conf={result.confidence:.2f}")
    print(f"skewMode: {result.skew_mode}")
    if result.overlay_path:
        logger.info(f"Overlay written to {result.overlay_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
