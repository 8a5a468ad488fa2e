"""objectdetect - Real-time object detection with Haar cascade classifiers.

This package provides a Viola-Jones style detector compatible with OpenCV
stump based Haar cascades: raster preprocessing, integral images, cascade
compilation and evaluation, multi-scale detection and rectangle grouping.
"""

__version__ = "0.1.0"

from .cascade import (
    Cascade,
    Detection,
    compile_cascade,
    group_rectangles,
    load_builtin,
    load_cascade,
    mirror_cascade,
)
from .detector import BufferPool, PyramidDetector

__all__ = [
    "Cascade",
    "Detection",
    "compile_cascade",
    "group_rectangles",
    "load_builtin",
    "load_cascade",
    "mirror_cascade",
    "BufferPool",
    "PyramidDetector",
]
