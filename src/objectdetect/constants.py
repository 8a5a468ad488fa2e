"""Centralized constants and configuration loader.

This module provides access to configuration values and sensible defaults
for the detector. Values are loaded from config/config.yaml when available,
otherwise defaults are used.

Some numbers are part of the detection contract rather than tunables: the
integer luma weights, the Gaussian taps of the edge-density filter and the
edge-density acceptance band. Cascades are trained and calibrated against
them, so they live here as plain module constants and are never read from
the config file.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "config.yaml"


# ============================================================
# Fixed Contract Constants (not configurable)
# ============================================================

# Integer RGB -> gray approximation, (R*4899 + G*9617 + B*1868 + 8192) >> 14
LUMA_WEIGHTS: Tuple[int, int, int] = (4899, 9617, 1868)
LUMA_ROUNDING: int = 8192
LUMA_SHIFT: int = 14

# Gaussian filter, size=5, sigma=sqrt(2)
GAUSSIAN_KERNEL: Tuple[float, ...] = (0.1117, 0.2365, 0.3036, 0.2365, 0.1117)
EDGE_BORDER: int = 2

# Edge density band (0-255 gradient magnitude domain) for canny pruning
EDGE_DENSITY_MIN: float = 60.0
EDGE_DENSITY_MAX: float = 200.0

# Compiled feature offsets are packed two per 32-bit word
PACKED_OFFSET_LIMIT: int = 1 << 16

HISTOGRAM_BINS: int = 256
PIXEL_MAX_VALUE: int = 255


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. Uses default if None.

    Returns:
        Configuration dictionary.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    try:
        if path.exists():
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")

    return {}


def _get_nested(config: Dict, *keys: str, default: Any = None) -> Any:
    """Get nested config value with default fallback."""
    value = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
        else:
            return default
        if value is None:
            return default
    return value


# ============================================================
# Detector Constants
# ============================================================

@dataclass
class DetectorConfig:
    """Multi-scale detector settings."""
    # Working resolution frames are resized to before detection
    width: int = 140
    height: int = 140
    # Pyramid step between consecutive scales (> 1.0)
    scale_factor: float = 1.1
    # Grouping threshold, 0 disables grouping
    min_neighbors: int = 1
    # Sliding window stride in pixels
    step: int = 1
    # Reject windows by edge density before running the cascade
    canny: bool = False
    # Neighbor distance factor used by rectangle grouping
    confluence: float = 0.25

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DetectorConfig":
        """Create from config dictionary."""
        det = _get_nested(config, "detector") or {}

        return cls(
            width=det.get("width", 140),
            height=det.get("height", 140),
            scale_factor=det.get("scale_factor", 1.1),
            min_neighbors=det.get("min_neighbors", 1),
            step=det.get("step", 1),
            canny=det.get("canny", False),
            confluence=det.get("confluence", 0.25),
        )


# ============================================================
# Image Processing Constants
# ============================================================

@dataclass
class ImageProcessingConfig:
    """Image preprocessing settings."""
    # Histogram sampling step for equalization
    equalize_step: int = 5

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ImageProcessingConfig":
        """Create from config dictionary."""
        ip = _get_nested(config, "image_processing") or {}

        return cls(
            equalize_step=ip.get("equalize_step", 5),
        )


# ============================================================
# Global Config Instance (lazy loaded)
# ============================================================

class Config:
    """Global configuration singleton."""

    _instance: Optional["Config"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load()
        return cls._instance

    def _load(self) -> None:
        """Load configuration from file."""
        self._config = load_config()
        self._detector: Optional[DetectorConfig] = None
        self._image_processing: Optional[ImageProcessingConfig] = None

    def reload(self, config_path: Optional[Path] = None) -> None:
        """Reload configuration from file."""
        self._config = load_config(config_path)
        # Reset cached configs
        self._detector = None
        self._image_processing = None

    @property
    def detector(self) -> DetectorConfig:
        """Get detector config."""
        if self._detector is None:
            self._detector = DetectorConfig.from_config(self._config)
        return self._detector

    @property
    def image_processing(self) -> ImageProcessingConfig:
        """Get image processing config."""
        if self._image_processing is None:
            self._image_processing = ImageProcessingConfig.from_config(self._config)
        return self._image_processing

    def get(self, *keys: str, default: Any = None) -> Any:
        """Get a config value by key path."""
        return _get_nested(self._config, *keys, default=default)


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()


# Convenience accessors
def get_detector_config() -> DetectorConfig:
    """Get detector configuration."""
    return get_config().detector


def get_image_processing_config() -> ImageProcessingConfig:
    """Get image processing configuration."""
    return get_config().image_processing
