"""Detector interface."""

from __future__ import annotations

import abc

from gauge_reader.core.entities import DetectionBatch, FrameData


class DetectorBase(abc.ABC):
    """Base class for every object detector used by the pipeline.

    Implementations are stateful (they hold a loaded model) and are only ever
    called from the pipeline worker thread, so they need no internal locking.
    """

    name: str = "detector"

    @abc.abstractmethod
    def warmup(self) -> None:
        """Load weights and prepare the model for inference."""

    @abc.abstractmethod
    def detect(self, frame: FrameData, rotation_degrees: int = 0) -> DetectionBatch:
        """Run inference on ``frame`` and return the detections.

        Raises ``DetectorError`` when the model cannot be loaded or inference fails.
        """
