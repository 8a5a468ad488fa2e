"""Cascade classifier and detection data types."""

from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass
class Feature:
    """Weighted rectangle of a Haar-like feature, in window coordinates."""

    x: int
    y: int
    width: int
    height: int
    weight: float


@dataclass
class WeakClassifier:
    """Decision stump ("tree") over 1-3 rectangle features.

    The weighted feature response is compared against ``threshold`` (scaled
    by the window's standard deviation) to select ``left`` or ``right``.
    """

    features: Tuple[Feature, ...]
    threshold: float
    left: float
    right: float
    tilted: bool = False


@dataclass
class Stage:
    """Boosted ensemble of weak classifiers with a rejection threshold."""

    threshold: float
    classifiers: Tuple[WeakClassifier, ...]


@dataclass
class Cascade:
    """Generic, resolution independent cascade classifier.

    ``tilted`` tells whether a rotated integral image is required. It
    defaults to whether any weak classifier is tilted but may be forced on.
    """

    window_width: int
    window_height: int
    stages: Tuple[Stage, ...]
    tilted: Optional[bool] = None

    def __post_init__(self):
        if self.tilted is None:
            self.tilted = any(c.tilted for s in self.stages for c in s.classifiers)

    @property
    def window_size(self) -> Tuple[int, int]:
        """Return window size as (width, height)."""
        return (self.window_width, self.window_height)

    @property
    def num_stages(self) -> int:
        return len(self.stages)

    @property
    def num_classifiers(self) -> int:
        return sum(len(s.classifiers) for s in self.stages)

    @property
    def num_features(self) -> int:
        return sum(len(c.features) for s in self.stages for c in s.classifiers)


Number = Union[int, float]


@dataclass
class Detection:
    """Detected object rectangle, optionally annotated with a neighbor count."""

    x: Number
    y: Number
    width: Number
    height: Number
    neighbors: Optional[int] = None

    @property
    def bbox(self) -> Tuple[Number, Number, Number, Number]:
        """Return bounding box as (x, y, w, h)."""
        return (self.x, self.y, self.width, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        """Return center point of bounding box."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> Number:
        """Return area of bounding box."""
        return self.width * self.height

    def as_tuple(self) -> tuple:
        """Return (x, y, w, h) or (x, y, w, h, neighbors) when grouped."""
        if self.neighbors is None:
            return self.bbox
        return self.bbox + (self.neighbors,)

    def scaled(self, factor: float) -> "Detection":
        """Return a copy with all four geometry fields multiplied by factor."""
        return Detection(
            x=self.x * factor,
            y=self.y * factor,
            width=self.width * factor,
            height=self.height * factor,
            neighbors=self.neighbors,
        )

    def rounded(self) -> Tuple[int, int, int, int]:
        """Return integer bounding box, e.g. for drawing."""
        return tuple(int(round(v)) for v in self.bbox)
