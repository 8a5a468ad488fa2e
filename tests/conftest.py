"""Pytest configuration and fixtures."""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def sample_image():
    """Create a sample RGB test image."""
    rng = np.random.default_rng(0)
    return rng.integers(0, 256, (48, 64, 3), dtype=np.uint8)


@pytest.fixture
def sample_grayscale_image():
    """Create a sample grayscale test image."""
    rng = np.random.default_rng(1)
    return rng.integers(0, 256, (48, 64), dtype=np.uint8)


@pytest.fixture
def block_frame():
    """12x12 dark frame with a bright 4x2 block at rows 4-5, columns 4-7."""
    frame = np.zeros((12, 12), dtype=np.uint8)
    frame[4:6, 4:8] = 200
    return frame


@pytest.fixture
def block_cascade():
    """Single stage 4x4 cascade accepting windows whose top half is brighter.

    The response (2 * top - whole) / std is 1.0 only for a window whose top
    half exactly covers a uniform bright block over a dark background, the
    threshold of 0.95 rejects every partial overlap.
    """
    from objectdetect.cascade import Cascade, Feature, Stage, WeakClassifier

    clf = WeakClassifier(
        features=(Feature(0, 0, 4, 4, -1.0), Feature(0, 0, 4, 2, 2.0)),
        threshold=0.95,
        left=0.0,
        right=1.0,
    )
    return Cascade(4, 4, (Stage(threshold=0.5, classifiers=(clf,)),))


@pytest.fixture
def column_cascade():
    """Single stage 4x4 cascade accepting windows whose left half is brighter."""
    from objectdetect.cascade import Cascade, Feature, Stage, WeakClassifier

    clf = WeakClassifier(
        features=(Feature(0, 0, 4, 4, -1.0), Feature(0, 0, 2, 4, 2.0)),
        threshold=0.95,
        left=0.0,
        right=1.0,
    )
    return Cascade(4, 4, (Stage(threshold=0.5, classifiers=(clf,)),))


@pytest.fixture
def mock_config():
    """Create a mock configuration dictionary."""
    return {
        "detector": {
            "width": 320,
            "height": 240,
            "scale_factor": 1.2,
            "min_neighbors": 2,
            "step": 2,
            "canny": True,
            "confluence": 0.3,
        },
        "image_processing": {
            "equalize_step": 3,
        },
    }
