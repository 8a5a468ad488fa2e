"""Cascade compilation for a fixed image width.

A compiled cascade replaces every rectangle by integral-table offsets
relative to the window's top-left table index and folds the weak classifier
threshold into the feature weights, so evaluating a node becomes a single
comparison of the weighted response against the window's standard
deviation.

The offsets follow the packed layout where the two relative offsets of a
feature share one 32-bit word, which limits each of them to 16 bits. The
compiler refuses features that would not fit instead of letting them wrap.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from ..constants import PACKED_OFFSET_LIMIT
from .types import Cascade, Feature, Stage, WeakClassifier

logger = logging.getLogger(__name__)


def _f32(value: float) -> float:
    return float(np.float32(value))


@dataclass
class CompiledFeature:
    """Rectangle as integral-table offsets.

    The four corners read are ``offset``, ``offset + dx``, ``offset + dy``
    and ``offset + dx + dy`` relative to the window origin.
    """

    offset: int
    dx: int
    dy: int
    weight: float


@dataclass
class CompiledClassifier:
    """Weak classifier with its leaves stored in read order.

    ``second`` is selected when the weighted response exceeds the window's
    standard deviation, ``first`` otherwise. A negative node threshold flips
    the comparison, so such nodes store (right, left) instead of
    (left, right).
    """

    features: Tuple[CompiledFeature, ...]
    tilted: bool
    first: float
    second: float


@dataclass
class CompiledStage:
    threshold: float
    classifiers: Tuple[CompiledClassifier, ...]


@dataclass
class CompiledCascade:
    """Cascade specialized for images of a single width."""

    window_width: int
    window_height: int
    stride: int
    stages: Tuple[CompiledStage, ...]
    tilted: bool

    @property
    def width(self) -> int:
        """Image width this cascade was compiled for."""
        return self.stride - 1


def _compile_feature(feature: Feature, stride: int, tilted: bool, inverse: float) -> CompiledFeature:
    offset = feature.x + feature.y * stride
    if tilted:
        dx = feature.width * (stride + 1)
        dy = feature.height * (stride - 1)
    else:
        dx = feature.width
        dy = feature.height * stride

    for name, value in (("dx", dx), ("dy", dy)):
        if not 0 <= value < PACKED_OFFSET_LIMIT:
            raise ValueError(
                f"Feature offset {name}={value} does not fit in 16 bits for image width "
                f"{stride - 1}; use a smaller working width"
            )

    return CompiledFeature(
        offset=offset,
        dx=dx,
        dy=dy,
        weight=_f32(_f32(feature.weight) * inverse),
    )


def _compile_classifier(clf: WeakClassifier, stride: int) -> CompiledClassifier:
    threshold = _f32(clf.threshold)
    if threshold == 0:
        raise ValueError("Weak classifier threshold must be non-zero")
    inverse = 1.0 / threshold

    features = tuple(_compile_feature(f, stride, clf.tilted, inverse) for f in clf.features)
    left, right = _f32(clf.left), _f32(clf.right)
    if inverse < 0:
        left, right = right, left

    return CompiledClassifier(features=features, tilted=clf.tilted, first=left, second=right)


def compile_cascade(cascade: Cascade, width: int) -> CompiledCascade:
    """Compile a cascade for images of the given width.

    Args:
        cascade: Generic cascade classifier
        width: Width of the images the cascade will be evaluated on

    Returns:
        Compiled cascade
    """
    stride = width + 1
    stages = tuple(
        CompiledStage(
            threshold=_f32(stage.threshold),
            classifiers=tuple(_compile_classifier(c, stride) for c in stage.classifiers),
        )
        for stage in cascade.stages
    )
    logger.debug(f"Compiled {len(stages)} stages for width {width}")
    return CompiledCascade(
        window_width=cascade.window_width,
        window_height=cascade.window_height,
        stride=stride,
        stages=stages,
        tilted=bool(cascade.tilted),
    )


def mirror_cascade(cascade: Cascade) -> Cascade:
    """Horizontally mirror a cascade classifier.

    Useful to detect mirrored objects such as the opposite hand. Window size
    and the tilted flag are preserved.
    """
    window_width = cascade.window_width

    def mirror_feature(f: Feature, tilted: bool) -> Feature:
        if tilted:
            return Feature(window_width - f.x, f.y, f.height, f.width, f.weight)
        return Feature(window_width - f.x - f.width, f.y, f.width, f.height, f.weight)

    stages = tuple(
        Stage(
            threshold=stage.threshold,
            classifiers=tuple(
                WeakClassifier(
                    features=tuple(mirror_feature(f, c.tilted) for f in c.features),
                    threshold=c.threshold,
                    left=c.left,
                    right=c.right,
                    tilted=c.tilted,
                )
                for c in stage.classifiers
            ),
        )
        for stage in cascade.stages
    )
    return Cascade(cascade.window_width, cascade.window_height, stages, tilted=cascade.tilted)


def pack_compiled(compiled: CompiledCascade) -> np.ndarray:
    """Pack a compiled cascade into a single flat float32 buffer.

    Integer words (window size, counts, offsets) are stored through the
    buffer's uint32 view, the two relative offsets of a feature share one
    word as ``dx | dy << 16``::

        [ww, wh, (stageThreshold, treeCount,
                  (tilted, 3 * featureCount, (offset, dx | dy << 16, weight) * n,
                   first, second) * trees) * stages]

    Returns:
        float32 array, ``result.view(np.uint32)`` gives the integer view
    """
    words: List[Tuple[bool, float]] = [
        (True, compiled.window_width),
        (True, compiled.window_height),
    ]
    for stage in compiled.stages:
        words += [(False, stage.threshold), (True, len(stage.classifiers))]
        for clf in stage.classifiers:
            words += [(False, 1.0 if clf.tilted else 0.0), (True, 3 * len(clf.features))]
            for f in clf.features:
                words += [(True, f.offset), (True, f.dx | (f.dy << 16)), (False, f.weight)]
            words += [(False, clf.first), (False, clf.second)]

    packed = np.zeros(len(words), dtype=np.float32)
    as_uint = packed.view(np.uint32)
    for i, (is_uint, value) in enumerate(words):
        if is_uint:
            as_uint[i] = value
        else:
            packed[i] = value
    return packed
