"""Detector abstractions."""

from .base import DetectorBase
from .yolo_detector import YoloDetector

__all__ = ["DetectorBase", "YoloDetector"]
