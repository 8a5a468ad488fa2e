"""Raster transforms and integral tables used by the cascade detector."""

from .ops import edge_density, equalize_histogram, grayscale, mirror, rescale
from .integral import rect_sum, rotated_sat, sat, squared_sat, tilted_rect_sum

__all__ = [
    "grayscale",
    "rescale",
    "mirror",
    "equalize_histogram",
    "edge_density",
    "sat",
    "squared_sat",
    "rotated_sat",
    "rect_sum",
    "tilted_rect_sum",
]
