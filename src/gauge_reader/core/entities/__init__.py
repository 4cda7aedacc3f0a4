"""Core entities shared across the reading pipeline."""

from .detection import (
    BoundingBox,
    Category,
    Detection,
    DetectionBatch,
    DisplayRect,
    OverlayBox,
    merge_batches,
)
from .frame import FrameData

__all__ = [
    "BoundingBox",
    "Category",
    "Detection",
    "DetectionBatch",
    "DisplayRect",
    "FrameData",
    "OverlayBox",
    "merge_batches",
]
