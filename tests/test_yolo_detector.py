from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

from gauge_reader.config.models import YoloConfig
from gauge_reader.core.detector import yolo_detector
from gauge_reader.core.detector.yolo_detector import YoloDetector
from gauge_reader.core.errors import DetectorError

from conftest import make_frame


class FakeYOLO:
    """Stands in for ultralytics.YOLO; records predict kwargs."""

    instances = []

    def __init__(self, weights, result=None, names=None, error=None):
        self.weights = weights
        self.names = names if names is not None else {0: "7", 1: "Kg"}
        self.result = result
        self.error = error
        self.predict_kwargs = []
        FakeYOLO.instances.append(self)

    def predict(self, **kwargs):
        self.predict_kwargs.append(kwargs)
        if self.error is not None:
            raise self.error
        return [self.result] if self.result is not None else []


def _boxes(xyxy, conf, cls):
    return SimpleNamespace(
        xyxy=np.asarray(xyxy, dtype=np.float32),
        conf=np.asarray(conf, dtype=np.float32),
        cls=np.asarray(cls, dtype=np.float32),
    )


@pytest.fixture
def install_model(monkeypatch):
    FakeYOLO.instances = []

    def _install(**kwargs):
        monkeypatch.setattr(yolo_detector, "YOLO", lambda weights: FakeYOLO(weights, **kwargs))

    return _install


@pytest.fixture
def config(tmp_path):
    return YoloConfig(weights_path=tmp_path / "model.pt", confidence_threshold=0.4, iou_threshold=0.5)


def test_detect_converts_boxes_and_labels(install_model, config):
    result = SimpleNamespace(
        boxes=_boxes([[10, 20, 30, 60], [100, 5, 140, 40]], [0.9, 0.75], [0, 1]),
        names={0: "7", 1: "Kg"},
    )
    install_model(result=result)
    detector = YoloDetector(config, name="unit")

    batch = detector.detect(make_frame(640, 480))

    assert detector.loaded
    assert (batch.image_width, batch.image_height) == (640, 480)
    assert batch.inference_time_ms >= 0
    assert [det.label for det in batch.detections] == ["7", "Kg"]
    first = batch.detections[0]
    assert (first.bbox.left, first.bbox.top, first.bbox.right, first.bbox.bottom) == (10, 20, 30, 60)
    assert first.confidence == pytest.approx(0.9)

    kwargs = FakeYOLO.instances[0].predict_kwargs[0]
    assert kwargs["conf"] == 0.4
    assert kwargs["iou"] == 0.5
    assert kwargs["verbose"] is False
    assert FakeYOLO.instances[0].weights == str(Path(config.weights_path).resolve())


def test_unknown_class_id_gets_fallback_label(install_model, config):
    result = SimpleNamespace(boxes=_boxes([[0, 0, 5, 5]], [0.5], [7]), names={0: "7"})
    install_model(result=result)

    batch = YoloDetector(config).detect(make_frame())

    assert batch.detections[0].label == "class_7"


def test_oriented_box_models_report_axis_aligned_hull(install_model, config):
    result = SimpleNamespace(boxes=None, obb=_boxes([[40, 50, 10, 20]], [0.8], [1]), names=["7", "Lb"])
    install_model(result=result)

    batch = YoloDetector(config).detect(make_frame())

    det = batch.detections[0]
    assert det.label == "Lb"
    assert (det.bbox.left, det.bbox.top, det.bbox.right, det.bbox.bottom) == (10, 20, 40, 50)


def test_boxes_are_clamped_to_the_image(install_model, config):
    result = SimpleNamespace(boxes=_boxes([[-5, -3, 700, 500]], [0.6], [0]), names={0: "7"})
    install_model(result=result)

    bbox = YoloDetector(config).detect(make_frame(640, 480)).detections[0].bbox

    assert (bbox.left, bbox.top, bbox.right, bbox.bottom) == (0, 0, 640, 480)


def test_rotation_swaps_reported_dimensions(install_model, config):
    install_model(result=SimpleNamespace(boxes=_boxes(np.zeros((0, 4)), [], []), names={}))
    detector = YoloDetector(config)

    batch = detector.detect(make_frame(640, 480), rotation_degrees=90)

    assert (batch.image_width, batch.image_height) == (480, 640)
    assert batch.detections == ()
    assert FakeYOLO.instances[0].predict_kwargs[0]["source"].shape[:2] == (640, 480)


def test_grayscale_frames_are_converted(install_model, config):
    install_model(result=None)
    frame = make_frame().copy_with(image=np.zeros((48, 64), dtype=np.uint8))

    batch = YoloDetector(config).detect(frame)

    assert batch.detections == ()
    assert FakeYOLO.instances[0].predict_kwargs[0]["source"].shape == (48, 64, 3)


def test_model_is_loaded_once(install_model, config):
    install_model(result=None)
    detector = YoloDetector(config)

    detector.detect(make_frame())
    detector.detect(make_frame())

    assert len(FakeYOLO.instances) == 1


def test_load_failure_is_a_detector_error(monkeypatch, config):
    def _broken(weights):
        raise FileNotFoundError(weights)

    monkeypatch.setattr(yolo_detector, "YOLO", _broken)
    detector = YoloDetector(config, name="unit")

    with pytest.raises(DetectorError, match="unable to load model"):
        detector.detect(make_frame())
    assert not detector.loaded


def test_inference_failure_is_a_detector_error(install_model, config):
    install_model(error=RuntimeError("tensor shape mismatch"))

    with pytest.raises(DetectorError, match="tensor shape mismatch"):
        YoloDetector(config).detect(make_frame())


def test_missing_or_invalid_image(install_model, config):
    install_model(result=None)
    detector = YoloDetector(config)

    with pytest.raises(DetectorError):
        detector.detect(None)
    with pytest.raises(DetectorError):
        detector.detect(make_frame().copy_with(image=np.zeros((0, 0, 3), dtype=np.uint8)))
    with pytest.raises(DetectorError, match="multiple of 90"):
        detector.detect(make_frame(), rotation_degrees=45)


def test_half_precision_is_disabled_on_cpu(install_model, tmp_path):
    install_model(result=None)
    detector = YoloDetector(YoloConfig(weights_path=tmp_path / "m.pt", device="cpu", half=True))

    detector.detect(make_frame())

    assert FakeYOLO.instances[0].predict_kwargs[0]["half"] is False
