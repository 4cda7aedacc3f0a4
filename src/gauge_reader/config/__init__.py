"""Configuration package for the gauge reader."""

from .loader import load_config, parse_config
from .models import (
    CameraConfig,
    Config,
    DetectorsConfig,
    LoggingConfig,
    OverlayConfig,
    PipelineConfig,
    VocabularyConfig,
    YoloConfig,
)

__all__ = [
    "CameraConfig",
    "Config",
    "DetectorsConfig",
    "LoggingConfig",
    "OverlayConfig",
    "PipelineConfig",
    "VocabularyConfig",
    "YoloConfig",
    "load_config",
    "parse_config",
]
