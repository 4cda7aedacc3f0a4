"""Service-layer building blocks shared by the pipeline and the UI."""

from .event_bus import EventBus
from .events import (
    EventType,
    PipelineErrorEvent,
    PipelineResultEvent,
    PredictRequest,
    Stage,
    StopEvent,
)
from .image_source import capture_frame, load_image, rotate_image

__all__ = [
    "EventBus",
    "EventType",
    "PipelineErrorEvent",
    "PipelineResultEvent",
    "PredictRequest",
    "Stage",
    "StopEvent",
    "capture_frame",
    "load_image",
    "rotate_image",
]
