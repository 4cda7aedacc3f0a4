"""Single-image sources: a file on disk (gallery) or one camera grab."""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Sequence, Union

import cv2
import numpy as np

from gauge_reader.core.entities import FrameData

logger = logging.getLogger("services.image_source")

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".webp"}

_ROTATIONS = {
    0: None,
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

_frame_ids = itertools.count(1)


def rotate_image(image: np.ndarray, rotation_degrees: int) -> np.ndarray:
    """Rotate clockwise by a multiple of 90 degrees; other angles raise ValueError."""
    rotation = rotation_degrees % 360
    if rotation not in _ROTATIONS:
        raise ValueError(f"Unsupported rotation {rotation_degrees}; use a multiple of 90 degrees.")
    code = _ROTATIONS[rotation]
    return image if code is None else cv2.rotate(image, code)


def load_image(path: Union[str, Path]) -> FrameData:
    """Decode an image file into a BGR frame."""
    path = Path(path).expanduser()
    if path.suffix.lower() not in IMAGE_SUFFIXES:
        raise ValueError(f"Unsupported image type: {path.suffix or path.name}")
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise FileNotFoundError(f"Unable to load image at {path}")
    logger.info("Loaded image %s (%dx%d)", path, image.shape[1], image.shape[0])
    return FrameData(image=image, frame_id=next(_frame_ids), source=f"image:{path}")


def capture_frame(
    device: Union[int, str],
    resolution: Sequence[int] = (1280, 960),
    warmup_frames: int = 5,
) -> FrameData:
    """Grab a single frame from a camera.

    The first ``warmup_frames`` frames are discarded while exposure settles.
    """
    cap = cv2.VideoCapture(device)
    try:
        if not cap.isOpened():
            raise RuntimeError(f"Unable to open video source {device}")
        width, height = int(resolution[0]), int(resolution[1])
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        for _ in range(max(0, warmup_frames)):
            cap.grab()
        ret, image = cap.read()
        if not ret or image is None:
            raise RuntimeError(f"Failed to read a frame from video source {device}")
    finally:
        cap.release()

    logger.info("Captured frame from camera %s (%dx%d)", device, image.shape[1], image.shape[0])
    return FrameData(image=image, frame_id=next(_frame_ids), source=f"camera:{device}")
