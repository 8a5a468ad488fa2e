"""Multi-scale cascade detector.

The detector owns one compiled cascade per pyramid scale and every scratch
buffer used during detection. Buffers live in a :class:`BufferPool` and are
overwritten in place on each frame; they are only reallocated when their
shape changes. A detector instance must therefore not be shared between
concurrent callers.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .cascade import Cascade, CompiledCascade, Detection, compile_cascade, group_rectangles
from .cascade import detect as evaluate_cascade
from .constants import DetectorConfig, get_detector_config, get_image_processing_config
from .imaging import (
    edge_density,
    equalize_histogram,
    grayscale,
    rescale,
    rotated_sat,
    sat,
    squared_sat,
)

logger = logging.getLogger(__name__)

# Dtypes cv2.resize accepts as-is
_RESIZABLE = (np.uint8, np.uint16, np.int16, np.float32, np.float64)


class BufferPool:
    """Named scratch buffers reused across frames."""

    def __init__(self):
        self._buffers: Dict[str, np.ndarray] = {}
        self.allocations = 0

    def get(self, name: str, shape: Tuple[int, ...], dtype=np.uint32) -> np.ndarray:
        """Return the buffer called ``name``, reallocating on shape/dtype change."""
        shape = tuple(shape)
        buffer = self._buffers.get(name)
        if buffer is None or buffer.shape != shape or buffer.dtype != dtype:
            logger.debug(f"Allocating buffer {name} {shape} {np.dtype(dtype).name}")
            buffer = np.zeros(shape, dtype=dtype)
            self._buffers[name] = buffer
            self.allocations += 1
        return buffer

    def clear(self) -> None:
        """Release all buffers."""
        self._buffers.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)


class PyramidDetector:
    """Multi-scale object detector around a Haar cascade classifier.

    Frames are resized to the working resolution, converted to grayscale
    once and then scanned at ``num_scales`` geometrically spaced scales.
    Detections are reported in working resolution coordinates.
    """

    def __init__(
        self,
        width: int,
        height: int,
        scale_factor: float,
        cascade: Cascade,
        confluence: float = 0.25,
    ):
        """Initialize detector.

        Args:
            width: Working width frames are resized to
            height: Working height frames are resized to
            scale_factor: Scaling factor between pyramid levels (> 1.0)
            cascade: Cascade classifier
            confluence: Neighbor distance factor for grouping
        """
        if scale_factor <= 1.0:
            raise ValueError(f"Scale factor must be > 1.0, got {scale_factor}")
        if width <= 0 or height <= 0:
            raise ValueError(f"Working size must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self.scale_factor = scale_factor
        self.cascade = cascade
        self.confluence = confluence
        self.tilted = bool(cascade.tilted)

        ratio = min(width / cascade.window_width, height / cascade.window_height)
        self.num_scales = max(0, int(math.log(ratio) / math.log(scale_factor)))

        self.scales: List[float] = []
        self.compiled: List[CompiledCascade] = []
        scale = 1.0
        for _ in range(self.num_scales):
            self.scales.append(scale)
            self.compiled.append(compile_cascade(cascade, int(width / scale)))
            scale *= scale_factor

        if self.num_scales == 0:
            logger.warning(
                f"No pyramid scale fits: {width}x{height} working size, "
                f"{cascade.window_width}x{cascade.window_height} window, "
                f"scale factor {scale_factor}"
            )
        logger.info(f"Detector {width}x{height} ready with {self.num_scales} scales")

        self.buffers = BufferPool()

    @classmethod
    def from_config(
        cls,
        cascade: Cascade,
        config: Optional[DetectorConfig] = None,
    ) -> "PyramidDetector":
        """Create a detector from a :class:`DetectorConfig` (global config if None)."""
        config = config or get_detector_config()
        return cls(
            config.width,
            config.height,
            config.scale_factor,
            cascade,
            confluence=config.confluence,
        )

    def _prepare(
        self,
        frame: np.ndarray,
        roi: Optional[Sequence[int]],
        bgr: bool,
    ) -> np.ndarray:
        """Crop, resize and convert a frame into the pooled gray buffer."""
        frame = np.asarray(frame)
        if frame.ndim == 3 and frame.shape[2] == 1:
            frame = frame[..., 0]
        if frame.ndim not in (2, 3):
            raise ValueError(f"Unsupported frame shape: {frame.shape}")

        if roi is not None:
            x, y, w, h = (int(v) for v in roi)
            frame_h, frame_w = frame.shape[:2]
            if w <= 0 or h <= 0 or x < 0 or y < 0 or x + w > frame_w or y + h > frame_h:
                raise ValueError(f"Region of interest {tuple(roi)} outside {frame_w}x{frame_h} frame")
            frame = frame[y:y + h, x:x + w]

        if frame.shape[:2] != (self.height, self.width):
            if frame.dtype not in _RESIZABLE:
                frame = frame.astype(np.float32)
            frame = cv2.resize(frame, (self.width, self.height), interpolation=cv2.INTER_LINEAR)

        gray = self.buffers.get("gray", (self.height, self.width))
        if frame.ndim == 3:
            grayscale(frame, out=gray, bgr=bgr)
        elif np.issubdtype(frame.dtype, np.floating):
            gray[...] = np.rint(frame)
        else:
            gray[...] = frame
        return gray

    def detect(
        self,
        frame: np.ndarray,
        min_neighbors: int = 1,
        step: int = 1,
        roi: Optional[Sequence[int]] = None,
        canny: bool = False,
        equalize: bool = False,
        bgr: bool = False,
    ) -> List[Detection]:
        """Multi-scale object detection on a frame.

        Args:
            frame: RGB(A) frame or 1-channel gray image
            min_neighbors: Group results by proximity, 0 disables grouping
            step: Window stride, increase for performance
            roi: Region of interest (x, y, w, h) in frame coordinates
            canny: Skip windows with implausible edge density
            equalize: Equalize the gray histogram before detection
            bgr: Color frames are in OpenCV BGR(A) order

        Returns:
            Detections in working resolution, sorted by neighbor count when grouped
        """
        gray = self._prepare(frame, roi, bgr)
        if equalize:
            equalize_histogram(gray, step=get_image_processing_config().equalize_step, out=gray)

        pool = self.buffers
        rects: List[Detection] = []
        for i, (scale, compiled) in enumerate(zip(self.scales, self.compiled)):
            scaled_width = int(self.width / scale)
            scaled_height = int(self.height / scale)
            shape = (scaled_height, scaled_width)
            table_shape = (scaled_height + 1, scaled_width + 1)

            scaled = pool.get(f"scaled/{i}", shape)
            if scale == 1.0:
                scaled[...] = gray
            else:
                rescale(gray, scale, out=scaled)

            canny_sat = None
            if canny:
                edges = edge_density(scaled, out=pool.get(f"canny/{i}", shape))
                canny_sat = sat(edges, out=pool.get(f"canny_sat/{i}", table_shape))

            table = sat(scaled, out=pool.get(f"sat/{i}", table_shape))
            squared = squared_sat(scaled, out=pool.get(f"ssat/{i}", table_shape))
            rotated = None
            if self.tilted:
                rotated = rotated_sat(scaled, out=pool.get(f"rsat/{i}", table_shape))

            found = evaluate_cascade(
                table, rotated, squared, canny_sat,
                scaled_width, scaled_height, step, compiled,
            )
            rects.extend(d.scaled(scale) for d in found)

        if min_neighbors:
            rects = group_rectangles(rects, min_neighbors, self.confluence)
            rects.sort(key=lambda d: d.neighbors, reverse=True)
        return rects

    def draw_detections(
        self,
        image: np.ndarray,
        detections: List[Detection],
        color: Tuple[int, int, int] = (0, 255, 0),
        thickness: int = 2,
        show_neighbors: bool = True,
    ) -> np.ndarray:
        """Draw detection boxes on an image."""
        output = image.copy()

        for det in detections:
            x, y, w, h = det.rounded()
            cv2.rectangle(output, (x, y), (x + w, y + h), color, thickness)

            if show_neighbors and det.neighbors is not None:
                cv2.putText(
                    output, str(det.neighbors),
                    (x, y - 4),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, color, 1
                )

        return output
