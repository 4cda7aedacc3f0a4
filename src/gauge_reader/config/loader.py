"""Configuration loader utilities."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import yaml

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


def _normalize_path(path: Path | str) -> Path:
    return path if isinstance(path, Path) else Path(path)


def _load_raw_config(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found at {config_path}")

    suffix = config_path.suffix.lower()
    with config_path.open("r", encoding="utf-8") as stream:
        if suffix in {".yaml", ".yml"}:
            return yaml.safe_load(stream) or {}
        if suffix == ".json":
            return json.load(stream)
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(config_path: Path | str) -> Config:
    """Load configuration file and construct Config dataclass."""

    config_path = _normalize_path(config_path)
    raw = _load_raw_config(config_path)
    if not isinstance(raw, dict):
        raise ValueError(f"Top-level configuration in {config_path} must be a mapping.")
    return parse_config(raw, base_dir=config_path.parent)


def parse_config(raw: Dict[str, Any], base_dir: Path | None = None) -> Config:
    """Build Config from an already parsed mapping.

    Relative weight and log paths are resolved against ``base_dir`` when given.
    """
    base_dir = _normalize_path(base_dir) if base_dir is not None else None

    detectors = _load_detectors_config(_section(raw, "detectors"), base_dir)
    vocabulary = _load_vocabulary_config(_section(raw, "vocabulary"))
    pipeline = PipelineConfig(**_section(raw, "pipeline"))

    camera_raw = _section(raw, "camera")
    if "resolution" in camera_raw:
        camera_raw["resolution"] = _int_pair(camera_raw["resolution"], "camera.resolution")
    camera = CameraConfig(**camera_raw)

    overlay_raw = _section(raw, "overlay")
    if "display_size" in overlay_raw:
        overlay_raw["display_size"] = _int_pair(overlay_raw["display_size"], "overlay.display_size")
    for key in ("box_color", "text_color", "text_background"):
        if key in overlay_raw:
            overlay_raw[key] = _color(overlay_raw[key], f"overlay.{key}")
    overlay = OverlayConfig(**overlay_raw)

    logging_raw = _section(raw, "logging")
    log_path = logging_raw.get("filepath")
    if log_path:
        logging_raw["filepath"] = _resolve(log_path, base_dir)
    if "loggers" in logging_raw:
        logging_raw["loggers"] = _logger_levels(logging_raw["loggers"])
    logging = LoggingConfig(**logging_raw)

    return Config(
        detectors=detectors,
        vocabulary=vocabulary,
        pipeline=pipeline,
        camera=camera,
        overlay=overlay,
        logging=logging,
    )


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping.")
    return dict(value)


def _resolve(path: Any, base_dir: Path | None) -> Path:
    path = Path(path).expanduser()
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _load_detectors_config(raw: Dict[str, Any], base_dir: Path | None) -> DetectorsConfig:
    defaults = DetectorsConfig()
    unit = _load_yolo_config(raw.get("unit"), defaults.unit, base_dir, "detectors.unit")
    measurement = _load_yolo_config(
        raw.get("measurement"), defaults.measurement, base_dir, "detectors.measurement"
    )
    return DetectorsConfig(unit=unit, measurement=measurement)


def _load_yolo_config(raw: Any, defaults: YoloConfig, base_dir: Path | None, name: str) -> YoloConfig:
    if raw is None:
        return defaults
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping.")
    yolo_raw = dict(raw)
    # Weights are looked up next to the config file, not the working directory.
    weights_path = yolo_raw.get("weights_path")
    if weights_path:
        yolo_raw["weights_path"] = _resolve(weights_path, base_dir)
    return YoloConfig(**yolo_raw)


def _load_vocabulary_config(raw: Dict[str, Any]) -> VocabularyConfig:
    if not raw:
        return VocabularyConfig()

    values = dict(raw)
    for key in ("digits", "units"):
        if key not in values:
            continue
        labels = values[key]
        if isinstance(labels, str) or not isinstance(labels, (list, tuple)):
            raise ValueError(f"vocabulary.{key} must be a list of labels.")
        values[key] = tuple(str(label).strip() for label in labels)
    if "placeholder" in values:
        values["placeholder"] = str(values["placeholder"])

    vocabulary = VocabularyConfig(**values)
    overlap = set(vocabulary.digits) & set(vocabulary.units)
    if overlap:
        raise ValueError(f"Labels cannot be both digits and units: {sorted(overlap)}")
    return vocabulary


def _int_pair(value: Any, name: str) -> tuple[int, int]:
    if value is None or isinstance(value, str) or len(value) != 2:
        raise ValueError(f"{name} must be a sequence of two integers [width, height].")
    return int(value[0]), int(value[1])


def _color(value: Any, name: str) -> tuple[int, int, int]:
    if value is None or isinstance(value, str) or len(value) != 3:
        raise ValueError(f"{name} must be a BGR triple.")
    return int(value[0]), int(value[1]), int(value[2])


def _logger_levels(value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("logging.loggers must map logger names to levels.")
    return {str(name): str(level).upper() for name, level in value.items()}
