"""YOLO detector backed by the Ultralytics runtime."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
from ultralytics import YOLO

from gauge_reader.config.models import YoloConfig
from gauge_reader.core.entities import BoundingBox, Category, Detection, DetectionBatch, FrameData
from gauge_reader.core.errors import DetectorError
from gauge_reader.services.image_source import rotate_image

from .base import DetectorBase

logger = logging.getLogger("detector.yolo")


class YoloDetector(DetectorBase):
    """Detector using an Ultralytics YOLO model (.pt, .onnx or .tflite export).

    Both axis-aligned and oriented-box (OBB) models are supported; for OBB
    models the axis-aligned hull of every rotated box is reported.
    """

    def __init__(self, config: YoloConfig, name: str = "yolo") -> None:
        self._config = config
        self.name = name
        self._model: YOLO | None = None
        self._names: Dict[int, str] = {}

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def warmup(self) -> None:
        """Load YOLO weights; repeated calls are no-ops."""
        if self._model is not None:
            return
        weights = self._config.resolved_weights()
        logger.info("[%s] Loading YOLO weights from %s", self.name, weights)
        try:
            self._model = YOLO(str(weights))
        except Exception as exc:
            raise DetectorError(f"{self.name}: unable to load model from {weights}: {exc}") from exc
        self._names = _names_as_dict(getattr(self._model, "names", None))
        if self._config.half and self._config.device == "cpu":
            logger.warning("[%s] Half precision requested on CPU; forcing full precision.", self.name)
            self._config = YoloConfig(
                weights_path=self._config.weights_path,
                confidence_threshold=self._config.confidence_threshold,
                iou_threshold=self._config.iou_threshold,
                device=self._config.device,
                image_size=self._config.image_size,
                max_det=self._config.max_det,
                half=False,
            )

    def detect(self, frame: FrameData, rotation_degrees: int = 0) -> DetectionBatch:
        """Run YOLO on the frame and return detections in image pixel coordinates."""
        image = _prepare_image(frame, rotation_degrees)
        self.warmup()
        assert self._model is not None

        height, width = image.shape[:2]
        predict_kwargs = dict(
            source=image,
            conf=self._config.confidence_threshold,
            iou=self._config.iou_threshold,
            device=self._config.device,
            max_det=self._config.max_det,
            half=self._config.half,
            verbose=False,
        )
        if self._config.image_size:
            predict_kwargs["imgsz"] = self._config.image_size

        start = perf_counter()
        try:
            results = self._model.predict(**predict_kwargs)
        except Exception as exc:
            raise DetectorError(f"{self.name}: inference failed: {exc}") from exc
        inference_time_ms = int(round((perf_counter() - start) * 1000.0))

        detections = self._parse_results(results[0], width, height) if results else []
        logger.debug(
            "[%s] YOLO inference produced %d detections (%d ms, %dx%d)",
            self.name,
            len(detections),
            inference_time_ms,
            width,
            height,
        )
        return DetectionBatch(
            detections=tuple(detections),
            inference_time_ms=inference_time_ms,
            image_width=width,
            image_height=height,
        )

    def _parse_results(self, result: Any, width: int, height: int) -> List[Detection]:
        """Convert an Ultralytics result into Detection entities."""
        detections: List[Detection] = []
        boxes = getattr(result, "boxes", None)
        if boxes is None or getattr(boxes, "xyxy", None) is None:
            # Oriented-box models expose their predictions on ``obb`` instead.
            boxes = getattr(result, "obb", None)
        if boxes is None or getattr(boxes, "xyxy", None) is None:
            return detections

        xyxy = _to_numpy(boxes.xyxy).reshape(-1, 4)
        confidences = _to_numpy(boxes.conf).reshape(-1)
        classes = _to_numpy(boxes.cls).reshape(-1).astype(int)
        names = _names_as_dict(getattr(result, "names", None)) or self._names

        for coords, conf, cls_id in zip(xyxy, confidences, classes):
            x1, y1, x2, y2 = (float(value) for value in coords)
            bbox = BoundingBox(
                left=_clamp(min(x1, x2), width),
                top=_clamp(min(y1, y2), height),
                right=_clamp(max(x1, x2), width),
                bottom=_clamp(max(y1, y2), height),
            )
            label = names.get(int(cls_id), f"class_{cls_id}")
            detections.append(Detection(bbox=bbox, category=Category(label=label, confidence=float(conf))))
        return detections


def _prepare_image(frame: Optional[FrameData], rotation_degrees: int) -> np.ndarray:
    if frame is None or frame.image is None:
        raise DetectorError("No image supplied to detector.")
    image = frame.image
    if not isinstance(image, np.ndarray) or image.ndim not in (2, 3) or image.size == 0:
        raise DetectorError(f"Invalid image: expected a non-empty HxW[xC] array, got {type(image).__name__}.")
    try:
        image = rotate_image(image, rotation_degrees)
    except ValueError as exc:
        raise DetectorError(str(exc)) from exc
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image


def _names_as_dict(names: Any) -> Dict[int, str]:
    if isinstance(names, dict):
        return {int(key): str(value) for key, value in names.items()}
    if isinstance(names, (list, tuple)):
        return {index: str(value) for index, value in enumerate(names)}
    return {}


def _to_numpy(values: Any) -> np.ndarray:
    if hasattr(values, "cpu"):
        values = values.cpu()
    if hasattr(values, "numpy"):
        return values.numpy()
    return np.asarray(values)


def _clamp(value: float, limit: int) -> float:
    return max(0.0, min(float(limit), value))
