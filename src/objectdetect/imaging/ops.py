"""Buffer-to-buffer raster transforms.

Every function takes 2D numpy arrays of shape (height, width) except
``grayscale`` which consumes an (h, w, 3) or (h, w, 4) color frame. All of
them accept an optional ``out`` array so callers can reuse scratch buffers
across frames.
"""

from typing import Optional

import numpy as np

from ..constants import (
    EDGE_BORDER,
    GAUSSIAN_KERNEL,
    HISTOGRAM_BINS,
    LUMA_ROUNDING,
    LUMA_SHIFT,
    LUMA_WEIGHTS,
    PIXEL_MAX_VALUE,
)


def _output(out: Optional[np.ndarray], shape, dtype) -> np.ndarray:
    """Return ``out`` if it matches, otherwise a fresh zeroed array."""
    if out is None:
        return np.zeros(shape, dtype=dtype)
    if out.shape != tuple(shape):
        raise ValueError(f"Output buffer has shape {out.shape}, expected {tuple(shape)}")
    return out


def grayscale(
    src: np.ndarray,
    out: Optional[np.ndarray] = None,
    bgr: bool = False,
) -> np.ndarray:
    """Convert an RGB(A) frame to a 1-channel 32-bit gray image.

    Uses the integer approximation of CV_RGB2GRAY, the alpha channel is
    ignored.

    Args:
        src: Frame of shape (h, w, 3) or (h, w, 4)
        out: Optional uint32 destination of shape (h, w)
        bgr: Channels are in OpenCV BGR(A) order instead of RGB(A)

    Returns:
        Gray image as uint32 array
    """
    if src.ndim != 3 or src.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (h, w, 3|4) frame, got shape {src.shape}")

    channels = src[..., :3].astype(np.uint32)
    if bgr:
        channels = channels[..., ::-1]

    wr, wg, wb = LUMA_WEIGHTS
    gray = (
        channels[..., 0] * wr + channels[..., 1] * wg + channels[..., 2] * wb + LUMA_ROUNDING
    ) >> LUMA_SHIFT

    dst = _output(out, src.shape[:2], np.uint32)
    dst[...] = gray
    return dst


def rescale(
    src: np.ndarray,
    factor: float,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Downscale an image by nearest neighbor sampling.

    No interpolation is performed and only shrinking is supported. The
    output is floor(w / factor) x floor(h / factor) and keeps the source
    dtype.

    Args:
        src: 1-channel source image
        factor: Scaling down factor (>= 1.0)
        out: Optional destination buffer

    Returns:
        Rescaled image
    """
    if factor < 1.0:
        raise ValueError(f"Rescale factor must be >= 1.0, got {factor}")

    height, width = src.shape
    dst_width = int(width / factor)
    dst_height = int(height / factor)

    cols = (np.arange(dst_width) * factor).astype(np.intp)
    # Row positions accumulate the factor step by step
    steps = np.full(dst_height, factor, dtype=np.float64)
    if dst_height:
        steps[0] = 0.0
    rows = np.minimum(np.add.accumulate(steps).astype(np.intp), height - 1)

    dst = _output(out, (dst_height, dst_width), src.dtype)
    dst[...] = src[rows[:, None], cols]
    return dst


def mirror(src: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Horizontally mirror a 1-channel image."""
    dst = _output(out, src.shape, src.dtype)
    dst[...] = src[:, ::-1]
    return dst


def equalize_histogram(
    src: np.ndarray,
    step: int = 5,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Equalize the histogram of an integer image with values in [0, 255].

    Corresponds to OpenCV's equalizeHist, except that the histogram is only
    sampled every ``step``-th pixel.

    Args:
        src: 1-channel integer source image
        step: Sampling step size, increase for performance
        out: Optional destination buffer (may be ``src`` itself)

    Returns:
        Equalized image with the source dtype
    """
    if step < 1:
        raise ValueError(f"Histogram sampling step must be >= 1, got {step}")

    flat = src.ravel().astype(np.intp)
    dst = _output(out, src.shape, src.dtype)
    if flat.size == 0:
        return dst
    if flat.min() < 0 or flat.max() > PIXEL_MAX_VALUE:
        raise ValueError("Histogram equalization expects pixel values in [0, 255]")

    hist = np.bincount(flat[::step], minlength=HISTOGRAM_BINS)
    norm = PIXEL_MAX_VALUE * step / flat.size
    lut = np.minimum(np.cumsum(hist) * norm, PIXEL_MAX_VALUE)

    dst[...] = lut[flat].reshape(src.shape).astype(src.dtype)
    return dst


def edge_density(src: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Gradient magnitude after 5x5 Gaussian smoothing, used for canny pruning.

    A separable Gaussian (sigma ~ sqrt(2)) is followed by the sum of the
    absolute horizontal and vertical Sobel responses. A 2 pixel border is
    left at zero.

    Args:
        src: 1-channel source image
        out: Optional destination buffer

    Returns:
        Gradient magnitude image (uint32 for integer sources)
    """
    height, width = src.shape
    integer = np.issubdtype(src.dtype, np.integer)
    dtype = np.uint32 if integer else src.dtype

    dst = _output(out, (height, width), dtype)
    dst[...] = 0

    b = EDGE_BORDER
    if height < 2 * b + 1 or width < 2 * b + 1:
        return dst

    k0, k1, k2, k3, k4 = GAUSSIAN_KERNEL
    s = src.astype(np.float64)

    # Horizontal pass
    smooth_h = np.zeros((height, width))
    smooth_h[:, b:width - b] = (
        k0 * s[:, 0:width - 4]
        + k1 * s[:, 1:width - 3]
        + k2 * s[:, 2:width - 2]
        + k3 * s[:, 3:width - 1]
        + k4 * s[:, 4:width]
    )
    if integer:
        smooth_h = np.trunc(smooth_h)

    # Vertical pass
    smooth = np.zeros((height, width))
    smooth[b:height - b, :] = (
        k0 * smooth_h[0:height - 4, :]
        + k1 * smooth_h[1:height - 3, :]
        + k2 * smooth_h[2:height - 2, :]
        + k3 * smooth_h[3:height - 1, :]
        + k4 * smooth_h[4:height, :]
    )
    if integer:
        smooth = np.trunc(smooth)

    def at(dy: int, dx: int) -> np.ndarray:
        return smooth[b + dy:height - b + dy, b + dx:width - b + dx]

    gx = (
        -at(-1, -1) + at(-1, 1)
        - 2 * at(0, -1) + 2 * at(0, 1)
        - at(1, -1) + at(1, 1)
    )
    gy = (
        at(-1, -1) + 2 * at(-1, 0) + at(-1, 1)
        - at(1, -1) - 2 * at(1, 0) - at(1, 1)
    )

    dst[b:height - b, b:width - b] = np.abs(gx) + np.abs(gy)
    return dst
