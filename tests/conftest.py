"""Shared fixtures: fake detectors standing in for the YOLO runtime."""

from __future__ import annotations

import threading
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pytest

from gauge_reader.config.models import PipelineConfig
from gauge_reader.core.detector import DetectorBase
from gauge_reader.core.entities import BoundingBox, Category, Detection, DetectionBatch, FrameData
from gauge_reader.core.errors import DetectorError
from gauge_reader.state_machine import TwoStagePipeline


def make_detection(label: str, left: float = 0.0, confidence: float = 0.9, top: float = 10.0) -> Detection:
    return Detection(
        bbox=BoundingBox(left=left, top=top, right=left + 15.0, bottom=top + 30.0),
        category=Category(label=label, confidence=confidence),
    )


def make_frame(width: int = 640, height: int = 480, value: int = 0) -> FrameData:
    return FrameData(image=np.full((height, width, 3), value, dtype=np.uint8), source="test")


class ConcurrencyProbe:
    """Counts how many detectors run at the same time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.order: List[str] = []

    def enter(self, name: str) -> None:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.order.append(name)

    def exit(self) -> None:
        with self._lock:
            self.active -= 1


class FakeDetector(DetectorBase):
    """Returns canned detections; can block on a gate or fail a number of times."""

    def __init__(
        self,
        name: str,
        detections: Sequence[Detection] = (),
        size: Tuple[int, int] = (640, 480),
        inference_ms: int = 5,
        fail_times: int = 0,
        gate: Optional[threading.Event] = None,
        probe: Optional[ConcurrencyProbe] = None,
    ) -> None:
        self.name = name
        self.detections = tuple(detections)
        self.size = size
        self.inference_ms = inference_ms
        self.fail_times = fail_times
        self.gate = gate
        self.probe = probe
        self.calls: List[Tuple[int, str]] = []
        self.started = threading.Event()
        self.finished = threading.Event()

    def warmup(self) -> None:
        pass

    def detect(self, frame: FrameData, rotation_degrees: int = 0) -> DetectionBatch:
        self.calls.append((rotation_degrees, threading.current_thread().name))
        self.started.set()
        if self.probe is not None:
            self.probe.enter(self.name)
        try:
            if self.gate is not None:
                self.gate.wait(timeout=5.0)
            if self.fail_times > 0:
                self.fail_times -= 1
                raise DetectorError(f"{self.name} model not loaded")
            return DetectionBatch(
                detections=self.detections,
                inference_time_ms=self.inference_ms,
                image_width=self.size[0],
                image_height=self.size[1],
            )
        finally:
            if self.probe is not None:
                self.probe.exit()
            self.finished.set()


class RecordingListener:
    def __init__(self) -> None:
        self.results: List[Tuple[List[Detection], int, int, int]] = []
        self.errors: List[str] = []
        self.threads: List[str] = []

    def on_results(self, detections, inference_time_ms, image_height, image_width) -> None:
        self.threads.append(threading.current_thread().name)
        self.results.append((list(detections), inference_time_ms, image_height, image_width))

    def on_error(self, message: str) -> None:
        self.threads.append(threading.current_thread().name)
        self.errors.append(message)


@pytest.fixture
def unit_detections() -> List[Detection]:
    return [make_detection("Kg", left=200, confidence=0.9), make_detection("Lb", left=220, confidence=0.4)]


@pytest.fixture
def measurement_detections() -> List[Detection]:
    return [make_detection("2", left=50), make_detection("7", left=10), make_detection(".", left=30)]


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(queue_size=4, poll_interval_s=0.01, shutdown_timeout_s=1.0)


@pytest.fixture
def pipeline_factory(pipeline_config):
    created: List[TwoStagePipeline] = []

    def _create(
        unit: DetectorBase, measurement: DetectorBase, config: Optional[PipelineConfig] = None
    ) -> TwoStagePipeline:
        pipeline = TwoStagePipeline(unit, measurement, config=config or pipeline_config)
        created.append(pipeline)
        return pipeline

    yield _create
    for pipeline in created:
        pipeline.shutdown(timeout=1.0)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()
