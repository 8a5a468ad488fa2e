"""Haar cascade classifiers: data model, loading, compilation and evaluation."""

from .types import Cascade, Detection, Feature, Stage, WeakClassifier
from .loader import (
    available_builtins,
    from_flat,
    load_builtin,
    load_cascade,
    parse_opencv_xml,
    to_flat,
)
from .compiler import (
    CompiledCascade,
    CompiledClassifier,
    CompiledFeature,
    CompiledStage,
    compile_cascade,
    mirror_cascade,
    pack_compiled,
)
from .evaluator import detect
from .grouping import group_rectangles

__all__ = [
    "Cascade",
    "Detection",
    "Feature",
    "Stage",
    "WeakClassifier",
    "available_builtins",
    "from_flat",
    "load_builtin",
    "load_cascade",
    "parse_opencv_xml",
    "to_flat",
    "CompiledCascade",
    "CompiledClassifier",
    "CompiledFeature",
    "CompiledStage",
    "compile_cascade",
    "mirror_cascade",
    "pack_compiled",
    "detect",
    "group_rectangles",
]
