#!/usr/bin/env python3
"""Command line interface for the cascade detector.

Usage:
    python -m objectdetect detect --image hand.jpg
    python -m objectdetect detect --image hand.jpg --cascade handfist --mirror
    python -m objectdetect info --cascade haarcascade_frontalface_default.xml

Examples:
    # Detect open hands and save an annotated copy
    python -m objectdetect detect --image photo.jpg --output result.jpg

    # Larger working size, edge density pruning and a coarser stride
    python -m objectdetect detect --image photo.jpg --width 320 --height 240 --canny --step 2
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

import cv2

from . import __version__
from .cascade import (
    Cascade,
    Detection,
    available_builtins,
    load_builtin,
    load_cascade,
    mirror_cascade,
)
from .constants import get_config
from .detector import PyramidDetector

logger = logging.getLogger(__name__)


def _load(name_or_path: str) -> Cascade:
    """Load a builtin cascade by name or a cascade file by path."""
    if name_or_path in available_builtins():
        return load_builtin(name_or_path)
    return load_cascade(Path(name_or_path))


def _to_image_space(detections: List[Detection], sx: float, sy: float) -> List[Detection]:
    return [
        Detection(d.x * sx, d.y * sy, d.width * sx, d.height * sy, d.neighbors)
        for d in detections
    ]


def cmd_detect(args) -> int:
    """Detect objects in an image file."""
    if args.config:
        get_config().reload(Path(args.config))
    defaults = get_config().detector

    cascade = _load(args.cascade)
    cascades = [cascade, mirror_cascade(cascade)] if args.mirror else [cascade]

    image = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if image is None:
        logger.error(f"Could not load image: {args.image}")
        return 1

    width = args.width or defaults.width
    height = args.height or defaults.height
    scale_factor = args.scale_factor or defaults.scale_factor
    min_neighbors = defaults.min_neighbors if args.min_neighbors is None else args.min_neighbors
    step = args.step or defaults.step
    canny = args.canny or defaults.canny

    detections: List[Detection] = []
    for c in cascades:
        detector = PyramidDetector(width, height, scale_factor, c, confluence=defaults.confluence)
        detections += detector.detect(
            image,
            min_neighbors=min_neighbors,
            step=step,
            canny=canny,
            equalize=args.equalize,
            bgr=True,
        )

    image_h, image_w = image.shape[:2]
    detections = _to_image_space(detections, image_w / width, image_h / height)
    logger.info(f"Found {len(detections)} object(s)")

    for i, det in enumerate(detections):
        x, y, w, h = det.rounded()
        neighbors = "-" if det.neighbors is None else det.neighbors
        print(f"[{i + 1}] pos=({x},{y}) size={w}x{h} neighbors={neighbors}")

    if args.output:
        output = detector.draw_detections(image, detections)
        cv2.imwrite(args.output, output)
        logger.info(f"Saved to: {args.output}")

    return 0


def cmd_info(args) -> int:
    """Print cascade statistics."""
    cascade = _load(args.cascade)
    tilted = sum(c.tilted for s in cascade.stages for c in s.classifiers)

    print(f"Window:   {cascade.window_width}x{cascade.window_height}")
    print(f"Stages:   {cascade.num_stages}")
    print(f"Trees:    {cascade.num_classifiers} ({tilted} tilted)")
    print(f"Features: {cascade.num_features}")
    return 0


def main(argv=None) -> int:
    """Main entry point for the objectdetect CLI."""
    parser = argparse.ArgumentParser(
        description="Haar cascade object detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Builtin cascades: {', '.join(available_builtins())}",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Detect command
    detect_parser = subparsers.add_parser("detect", help="Detect objects in an image")
    detect_parser.add_argument("--image", "-i", type=str, required=True,
                               help="Input image path")
    detect_parser.add_argument("--cascade", "-c", type=str, default="handopen",
                               help="Builtin cascade name or cascade file (default: handopen)")
    detect_parser.add_argument("--output", "-o", type=str, default=None,
                               help="Write annotated image to this path")
    detect_parser.add_argument("--config", type=str, default=None,
                               help="Path to configuration file")
    detect_parser.add_argument("--width", type=int, default=None,
                               help="Working width (default from config)")
    detect_parser.add_argument("--height", type=int, default=None,
                               help="Working height (default from config)")
    detect_parser.add_argument("--scale-factor", type=float, default=None,
                               help="Pyramid scale factor > 1.0 (default from config)")
    detect_parser.add_argument("--min-neighbors", type=int, default=None,
                               help="Grouping threshold, 0 disables grouping")
    detect_parser.add_argument("--step", type=int, default=None,
                               help="Sliding window stride in pixels")
    detect_parser.add_argument("--canny", action="store_true",
                               help="Enable edge density pruning")
    detect_parser.add_argument("--equalize", action="store_true",
                               help="Equalize the histogram before detection")
    detect_parser.add_argument("--mirror", action="store_true",
                               help="Also detect mirrored objects (e.g. the other hand)")

    # Info command
    info_parser = subparsers.add_parser("info", help="Show cascade statistics")
    info_parser.add_argument("--cascade", "-c", type=str, default="handopen",
                             help="Builtin cascade name or cascade file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "detect": cmd_detect,
        "info": cmd_info,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
