"""Sliding window evaluation of a compiled cascade at one scale.

All windows of a scale are evaluated together with numpy. Each stage only
sees the windows that survived the previous one, which is the vectorized
form of the cascade's early exit: a rejected window is never evaluated
against later stages.
"""

import logging
from typing import List, Optional

import numpy as np

from ..constants import EDGE_DENSITY_MAX, EDGE_DENSITY_MIN
from .compiler import CompiledCascade
from .types import Detection

logger = logging.getLogger(__name__)


def _corner_sum(table: np.ndarray, a: np.ndarray, dx: int, dy: int) -> np.ndarray:
    """4-corner rectangle sums, in wrapping uint32 arithmetic."""
    b = a + dx
    c = a + dy
    d = b + dy
    return (table[a] - table[b] - table[c] + table[d]).astype(np.float64)


def detect(
    sat: np.ndarray,
    rsat: Optional[np.ndarray],
    ssat: np.ndarray,
    canny_sat: Optional[np.ndarray],
    width: int,
    height: int,
    step: int,
    compiled: CompiledCascade,
) -> List[Detection]:
    """Evaluate a compiled cascade with a sliding window.

    Args:
        sat: SAT of the source image
        rsat: Rotated SAT of the source image (required for tilted features)
        ssat: Squared SAT of the source image
        canny_sat: SAT of the edge density image, enables canny pruning
        width: Width of the source image
        height: Height of the source image
        step: Window stride in pixels, increase for performance
        compiled: Cascade compiled for ``width``

    Returns:
        Rectangles of the windows accepted by every stage, ordered by x then y
    """
    if step < 1:
        raise ValueError(f"Step must be >= 1, got {step}")
    if compiled.stride != width + 1:
        raise ValueError(
            f"Cascade was compiled for width {compiled.width}, image width is {width}"
        )
    needs_rsat = any(c.tilted for s in compiled.stages for c in s.classifiers)
    if needs_rsat and rsat is None:
        raise ValueError("Cascade has tilted features but no rotated SAT was given")

    stride = width + 1
    window_width = compiled.window_width
    window_height = compiled.window_height
    area = window_width * window_height
    window_dy = window_height * stride

    xs = np.arange(0, width - window_width + 1, step)
    ys = np.arange(0, height - window_height + 1, step)
    if xs.size == 0 or ys.size == 0:
        return []

    grid_x, grid_y = np.meshgrid(xs, ys, indexing="ij")
    xs = grid_x.ravel()
    ys = grid_y.ravel()
    origins = xs + ys * stride

    sat = sat.ravel()
    ssat = ssat.ravel()
    rsat = rsat.ravel() if rsat is not None else None
    total_windows = origins.size

    if canny_sat is not None:
        density = _corner_sum(canny_sat.ravel(), origins, window_width, window_dy) * (1.0 / area)
        keep = ~((density < EDGE_DENSITY_MIN) | (density > EDGE_DENSITY_MAX))
        origins, xs, ys = origins[keep], xs[keep], ys[keep]

    # Normalize by the window's standard deviation (scaled by its area)
    total = _corner_sum(sat, origins, window_width, window_dy)
    squared = _corner_sum(ssat, origins, window_width, window_dy)
    variance = squared * area - total * total
    std = np.where(variance > 1, np.sqrt(np.maximum(variance, 1)), 1.0)

    for stage in compiled.stages:
        if origins.size == 0:
            break
        stage_sum = np.zeros(origins.size)
        for clf in stage.classifiers:
            table = rsat if clf.tilted else sat
            response = np.zeros(origins.size)
            for feature in clf.features:
                response += feature.weight * _corner_sum(
                    table, origins + feature.offset, feature.dx, feature.dy
                )
            stage_sum += np.where(response > std, clf.second, clf.first)

        alive = ~(stage_sum < stage.threshold)
        origins, xs, ys, std = origins[alive], xs[alive], ys[alive], std[alive]

    logger.debug(
        f"Width {width}: {origins.size} of {total_windows} windows passed all stages"
    )
    return [
        Detection(int(x), int(y), window_width, window_height)
        for x, y in zip(xs, ys)
    ]
