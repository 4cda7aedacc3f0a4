"""Messages exchanged between the caller thread and the pipeline worker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Tuple

from gauge_reader.core.entities import Detection, FrameData


class EventType(Enum):
    """Kinds of messages carried on an EventBus."""

    PREDICT = auto()
    RESULT = auto()
    ERROR = auto()
    STOP = auto()


class Stage(Enum):
    """The two detectors run by the pipeline, in execution order."""

    UNIT = "unit"
    MEASUREMENT = "measurement"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PredictRequest:
    """Work item asking the pipeline to read one image."""

    frame: FrameData
    rotation_degrees: int = 0
    request_id: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    type: EventType = field(init=False, default=EventType.PREDICT)


@dataclass(frozen=True)
class PipelineResultEvent:
    """Combined detections of both stages for one request."""

    detections: Tuple[Detection, ...]
    inference_time_ms: int
    image_height: int
    image_width: int
    request_id: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    type: EventType = field(init=False, default=EventType.RESULT)


@dataclass(frozen=True)
class PipelineErrorEvent:
    """A request failed; ``message`` is meant for the user."""

    message: str
    stage: Stage | None = None
    request_id: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    type: EventType = field(init=False, default=EventType.ERROR)


@dataclass(frozen=True)
class StopEvent:
    """Asks the consumer loop to stop, with an optional reason."""

    reason: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    type: EventType = field(init=False, default=EventType.STOP)
