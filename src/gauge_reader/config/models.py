"""Dataclass definitions for application configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping, Optional, Sequence, Tuple

DIGIT_LABELS: Tuple[str, ...] = ("0", "1", "2", "3", "4", "5", "6", "7", "8", "9", ".")
UNIT_LABELS: Tuple[str, ...] = ("Lb", "Kg", "OZ", "jin")
NO_READING_PLACEHOLDER = "—"


@dataclass(frozen=True)
class YoloConfig:
    """YOLO detector configuration."""

    weights_path: Path = Path("weights/model.pt")
    confidence_threshold: float = 0.5
    iou_threshold: float = 0.3
    device: Literal["cpu", "cuda"] = "cpu"
    image_size: Optional[int] = None
    max_det: int = 30
    half: bool = False

    def resolved_weights(self) -> Path:
        path = self.weights_path if isinstance(self.weights_path, Path) else Path(self.weights_path)
        return path.expanduser().resolve()


def _default_unit_detector() -> YoloConfig:
    return YoloConfig(weights_path=Path("weights/digital_characters_obb.pt"))


def _default_measurement_detector() -> YoloConfig:
    return YoloConfig(weights_path=Path("weights/separated_characters.pt"))


@dataclass(frozen=True)
class DetectorsConfig:
    """The two models run in sequence: unit first, measurement second."""

    unit: YoloConfig = field(default_factory=_default_unit_detector)
    measurement: YoloConfig = field(default_factory=_default_measurement_detector)


@dataclass(frozen=True)
class VocabularyConfig:
    """Label sets used to rebuild the reading from character detections."""

    digits: Sequence[str] = DIGIT_LABELS
    units: Sequence[str] = UNIT_LABELS
    placeholder: str = NO_READING_PLACEHOLDER


@dataclass(frozen=True)
class PipelineConfig:
    """Two-stage pipeline worker settings."""

    queue_size: int = 8
    poll_interval_s: float = 0.1
    shutdown_timeout_s: float = 2.0


@dataclass(frozen=True)
class CameraConfig:
    """Camera used for single-shot capture."""

    device_index: int = 0
    resolution: Sequence[int] = (1280, 960)
    warmup_frames: int = 5


@dataclass(frozen=True)
class OverlayConfig:
    """Overlay rendering settings."""

    enabled: bool = True
    display_size: Sequence[int] = (960, 720)
    box_color: Sequence[int] = (0, 255, 0)
    text_color: Sequence[int] = (255, 255, 255)
    text_background: Sequence[int] = (0, 0, 0)
    thickness: int = 2
    font_scale: float = 0.6


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    filepath: Path = Path("logs/app.log")
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    console: bool = True
    loggers: Mapping[str, str] = field(default_factory=dict)

    def resolved_path(self) -> Path:
        path = self.filepath if isinstance(self.filepath, Path) else Path(self.filepath)
        return path.expanduser().resolve()


@dataclass(frozen=True)
class Config:
    """Root configuration object."""

    detectors: DetectorsConfig = field(default_factory=DetectorsConfig)
    vocabulary: VocabularyConfig = field(default_factory=VocabularyConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
