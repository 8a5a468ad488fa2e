"""Summed area tables (integral images).

All tables are uint32 arrays one row and one column larger than the source
image, with row 0 and column 0 set to zero. Accumulation wraps modulo 2^32,
and the 4-corner differences below use the same modular arithmetic, so the
sum over any region is exact as long as that region's own sum fits in 32
bits, even when the table itself has wrapped.
"""

from typing import Optional

import numpy as np

_MASK32 = 0xFFFFFFFF


def _table(src: np.ndarray, out: Optional[np.ndarray]) -> np.ndarray:
    height, width = src.shape
    shape = (height + 1, width + 1)
    if out is None:
        return np.zeros(shape, dtype=np.uint32)
    if out.shape != shape or out.dtype != np.uint32:
        raise ValueError(
            f"Integral table buffer must be uint32 with shape {shape}, "
            f"got {out.dtype} {out.shape}"
        )
    out[0, :] = 0
    out[:, 0] = 0
    return out


def _accumulate(values: np.ndarray, table: np.ndarray) -> np.ndarray:
    if values.size:
        column_sums = np.cumsum(values, axis=0, dtype=np.uint32)
        np.cumsum(column_sums, axis=1, dtype=np.uint32, out=table[1:, 1:])
    return table


def sat(src: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Compute the integral image of a 1-channel image.

    ``table[y, x]`` holds the sum of all pixels with row < y and column < x.

    Args:
        src: 1-channel source image of shape (h, w)
        out: Optional uint32 buffer of shape (h + 1, w + 1)

    Returns:
        Summed area table
    """
    table = _table(src, out)
    return _accumulate(src.astype(np.uint32, copy=False), table)


def squared_sat(src: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Compute the integral image of the squared pixel values."""
    table = _table(src, out)
    values = src.astype(np.uint32)
    return _accumulate(values * values, table)


def rotated_sat(src: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Compute the 45 degree rotated (tilted) integral image.

    For ``x >= 1`` the table holds the sum over the upward-opening triangle
    with its apex on pixel (x - 1, y - 1)::

        table[y, x] = sum(src[py, px] for py < y if |px - (x - 1)| <= y - 1 - py)

    Column 0 is always zero. Any tilted rectangle can then be summed from 4
    reads, see :func:`tilted_rect_sum`.

    Args:
        src: 1-channel source image of shape (h, w)
        out: Optional uint32 buffer of shape (h + 1, w + 1)

    Returns:
        Rotated summed area table
    """
    table = _table(src, out)
    height, width = src.shape
    if not src.size:
        return table
    values = src.astype(np.uint32, copy=False)

    # Forward sweep: propagate diagonal sums towards the bottom right and
    # accumulate the diagonals that leave through the last column
    for y in range(height):
        table[y + 1, 1:] = values[y] + table[y, :width]
        table[y + 1, width:] += table[y, width:]

    # Backward sweep, column-major from the right: fold in the remaining
    # triangle from the already finished column to the right
    for x in range(width - 1, 0, -1):
        table[1:, x] += table[:-1, x] + table[:-1, x + 1]

    return table


def rect_sum(table: np.ndarray, x: int, y: int, width: int, height: int) -> int:
    """Sum of an axis-aligned rectangle from a SAT (or squared SAT)."""
    total = (
        int(table[y, x])
        - int(table[y, x + width])
        - int(table[y + height, x])
        + int(table[y + height, x + width])
    )
    return total & _MASK32


def tilted_rect_sum(rsat: np.ndarray, x: int, y: int, width: int, height: int) -> int:
    """Sum of a 45 degree rotated rectangle from a rotated SAT.

    The rectangle's top corner sits at table coordinate (x, y); ``width``
    extends down-right and ``height`` extends down-left.
    """
    total = (
        int(rsat[y, x])
        - int(rsat[y + width, x + width])
        - int(rsat[y + height, x - height])
        + int(rsat[y + width + height, x + width - height])
    )
    return total & _MASK32
