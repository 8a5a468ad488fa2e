"""Cascade classifier loading and serialization.

Cascades are exchanged as a flat numeric sequence::

    [windowWidth, windowHeight,
     (stageThreshold, treeCount,
      (tilted, featureCount, (x, y, w, h, weight) * featureCount,
       nodeThreshold, left, right) * treeCount) * stages]

The number of stages is implied by the length of the sequence. OpenCV Haar
cascade XML files (both the old ``opencv-haar-classifier`` layout and the
newer ``opencv-cascade-classifier`` one) can be read as well, as long as
every tree is a single decision stump.
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable, List, Optional, Union

import numpy as np

from .types import Cascade, Feature, Stage, WeakClassifier

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# Cascades shipped with the package, all of them contain tilted features
BUILTIN_CASCADES = {
    "handfist": "handfist.txt",
    "handopen": "handopen.txt",
}


def from_flat(values: Iterable[float], tilted: Optional[bool] = None) -> Cascade:
    """Build a cascade from its flat numeric representation.

    Args:
        values: Flat cascade sequence
        tilted: Force the rotated-SAT flag (derived from the data if None)

    Returns:
        Parsed cascade
    """
    data = np.asarray(list(values), dtype=np.float32)
    if data.size < 2:
        raise ValueError("Cascade data must start with window width and height")

    def take(index: int, count: int) -> np.ndarray:
        if index + count > data.size:
            raise ValueError(
                f"Truncated cascade data: needed {count} value(s) at offset {index}, "
                f"only {data.size - index} left"
            )
        return data[index:index + count]

    window_width, window_height = (int(v) for v in data[:2])
    stages: List[Stage] = []
    i = 2
    while i < data.size:
        stage_threshold, tree_count = take(i, 2)
        i += 2
        classifiers = []
        for _ in range(int(tree_count)):
            is_tilted, feature_count = take(i, 2)
            i += 2
            features = []
            for _ in range(int(feature_count)):
                x, y, w, h, weight = take(i, 5)
                i += 5
                features.append(Feature(int(x), int(y), int(w), int(h), float(weight)))
            threshold, left, right = take(i, 3)
            i += 3
            classifiers.append(
                WeakClassifier(
                    features=tuple(features),
                    threshold=float(threshold),
                    left=float(left),
                    right=float(right),
                    tilted=bool(is_tilted),
                )
            )
        stages.append(Stage(threshold=float(stage_threshold), classifiers=tuple(classifiers)))

    return Cascade(window_width, window_height, tuple(stages), tilted=tilted)


def to_flat(cascade: Cascade) -> np.ndarray:
    """Serialize a cascade to its flat float32 representation."""
    values: List[float] = [cascade.window_width, cascade.window_height]
    for stage in cascade.stages:
        values += [stage.threshold, len(stage.classifiers)]
        for clf in stage.classifiers:
            values += [1 if clf.tilted else 0, len(clf.features)]
            for f in clf.features:
                values += [f.x, f.y, f.width, f.height, f.weight]
            values += [clf.threshold, clf.left, clf.right]
    return np.asarray(values, dtype=np.float32)


def _numbers(text: Optional[str]) -> List[float]:
    if not text:
        return []
    return [float(token) for token in re.split(r"[\s,]+", text.strip()) if token]


def _parse_rects(feature: ET.Element) -> List[Feature]:
    rects = []
    for rect in feature.find("rects"):
        x, y, w, h, weight = _numbers(rect.text)
        rects.append(Feature(int(x), int(y), int(w), int(h), weight))
    return rects


def _is_tilted(feature: ET.Element) -> bool:
    node = feature.find("tilted")
    return node is not None and bool(int(_numbers(node.text)[0]))


def _parse_old_haar(node: ET.Element) -> Cascade:
    window_width, window_height = (int(v) for v in _numbers(node.findtext("size")))
    stages = []
    for stage in node.find("stages"):
        classifiers = []
        for tree in stage.find("trees"):
            nodes = list(tree)
            if len(nodes) != 1 or nodes[0].find("left_val") is None or nodes[0].find("right_val") is None:
                raise ValueError("Only stump based cascades are supported")
            stump = nodes[0]
            feature = stump.find("feature")
            classifiers.append(
                WeakClassifier(
                    features=tuple(_parse_rects(feature)),
                    threshold=float(stump.findtext("threshold")),
                    left=float(stump.findtext("left_val")),
                    right=float(stump.findtext("right_val")),
                    tilted=_is_tilted(feature),
                )
            )
        stages.append(
            Stage(threshold=float(stage.findtext("stage_threshold")), classifiers=tuple(classifiers))
        )
    return Cascade(window_width, window_height, tuple(stages))


def _parse_new_cascade(node: ET.Element) -> Cascade:
    feature_type = (node.findtext("featureType") or "").strip().upper()
    if feature_type != "HAAR":
        raise ValueError(f"Unsupported cascade feature type: {feature_type or 'unknown'}")

    features = [
        (_parse_rects(f), _is_tilted(f)) for f in node.find("features")
    ]
    stages = []
    for stage in node.find("stages"):
        classifiers = []
        for weak in stage.find("weakClassifiers"):
            internal = _numbers(weak.findtext("internalNodes"))
            leaves = _numbers(weak.findtext("leafValues"))
            if len(internal) != 4 or len(leaves) != 2:
                raise ValueError("Only stump based cascades are supported")
            rects, tilted = features[int(internal[2])]
            classifiers.append(
                WeakClassifier(
                    features=tuple(rects),
                    threshold=internal[3],
                    left=leaves[0],
                    right=leaves[1],
                    tilted=tilted,
                )
            )
        stages.append(
            Stage(threshold=float(stage.findtext("stageThreshold")), classifiers=tuple(classifiers))
        )
    return Cascade(
        int(node.findtext("width")),
        int(node.findtext("height")),
        tuple(stages),
    )


def parse_opencv_xml(text: Union[str, bytes]) -> Cascade:
    """Parse an OpenCV Haar cascade XML document."""
    root = ET.fromstring(text)
    for node in root:
        type_id = node.get("type_id")
        if type_id == "opencv-haar-classifier":
            return _parse_old_haar(node)
        if type_id == "opencv-cascade-classifier" or node.tag == "cascade":
            return _parse_new_cascade(node)
    raise ValueError("No Haar cascade found in XML document")


def load_cascade(path: Union[str, Path], tilted: Optional[bool] = None) -> Cascade:
    """Load a cascade from a file.

    Supported formats are ``.json`` (a flat array, or an object with a
    ``classifier`` array and optional ``tilted`` flag), ``.xml`` (OpenCV) and
    plain text holding the flat array separated by commas or whitespace.

    Args:
        path: Cascade file path
        tilted: Force the rotated-SAT flag

    Returns:
        Loaded cascade
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Cascade file not found: {path}")

    suffix = path.suffix.lower()

    if suffix == ".xml":
        cascade = parse_opencv_xml(path.read_bytes())
        if tilted is not None:
            cascade.tilted = tilted
    elif suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            if tilted is None:
                tilted = data.get("tilted")
            data = data["classifier"]
        cascade = from_flat(data, tilted=tilted)
    else:
        cascade = from_flat(_numbers(path.read_text(encoding="utf-8")), tilted=tilted)

    logger.info(
        f"Loaded cascade {path.name}: {cascade.window_width}x{cascade.window_height} window, "
        f"{cascade.num_stages} stages, {cascade.num_classifiers} trees, "
        f"{cascade.num_features} features"
    )
    return cascade


def available_builtins() -> List[str]:
    """Return names of the cascades shipped with the package."""
    return list(BUILTIN_CASCADES.keys())


def load_builtin(name: str) -> Cascade:
    """Load one of the bundled cascades by name."""
    if name not in BUILTIN_CASCADES:
        raise ValueError(
            f"Unknown builtin cascade: {name}. "
            f"Available: {available_builtins()}"
        )
    return load_cascade(DATA_DIR / BUILTIN_CASCADES[name], tilted=True)
