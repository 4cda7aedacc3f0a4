"""Entities describing detector output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in source-image pixel coordinates."""

    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self) -> None:
        if self.left > self.right or self.top > self.bottom:
            raise ValueError(
                f"Invalid bounding box ({self.left}, {self.top}, {self.right}, {self.bottom}): "
                "left must not exceed right and top must not exceed bottom."
            )

    def width(self) -> float:
        return self.right - self.left

    def height(self) -> float:
        return self.bottom - self.top

    def center(self) -> Tuple[float, float]:
        """Center of the rectangle in pixel coordinates."""
        return (self.left + self.width() / 2.0, self.top + self.height() / 2.0)


@dataclass(frozen=True)
class Category:
    """Class label predicted for a box together with its confidence."""

    label: str
    confidence: float


@dataclass(frozen=True)
class Detection:
    """A single box returned by a detector."""

    bbox: BoundingBox
    category: Category

    @property
    def label(self) -> str:
        return self.category.label

    @property
    def confidence(self) -> float:
        return self.category.confidence

    def center(self) -> Tuple[float, float]:
        return self.bbox.center()


@dataclass(frozen=True)
class DetectionBatch:
    """Detections from one detector call and the frame size they refer to."""

    detections: Tuple[Detection, ...]
    inference_time_ms: int
    image_width: int
    image_height: int

    def __post_init__(self) -> None:
        # Accept any sequence from callers but always store an immutable tuple.
        object.__setattr__(self, "detections", tuple(self.detections))
        if self.inference_time_ms < 0:
            raise ValueError("inference_time_ms must be >= 0")
        if self.image_width <= 0 or self.image_height <= 0:
            raise ValueError(
                f"Frame dimensions must be positive, got {self.image_width}x{self.image_height}"
            )

    def __len__(self) -> int:
        return len(self.detections)

    def same_frame_as(self, other: "DetectionBatch") -> bool:
        """True when both batches were produced against equally sized frames."""
        return (self.image_width, self.image_height) == (other.image_width, other.image_height)


@dataclass(frozen=True)
class DisplayRect:
    """Destination rectangle, in view pixels, where the source image is drawn."""

    left: float
    top: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, left: float, top: float, right: float, bottom: float) -> "DisplayRect":
        return cls(left=left, top=top, width=right - left, height=bottom - top)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class OverlayBox:
    """A detection mapped into display coordinates, ready to be drawn."""

    left: float
    top: float
    right: float
    bottom: float
    label: str
    confidence: float

    def caption(self) -> str:
        return f"{self.label} {round(self.confidence * 100)}%"


def merge_batches(first: DetectionBatch, second: DetectionBatch) -> DetectionBatch:
    """Concatenate two batches taken from the same frame.

    Raises ``ValueError`` when the frame dimensions differ.
    """
    if not first.same_frame_as(second):
        raise ValueError(
            "Cannot merge detections from different frames: "
            f"{first.image_width}x{first.image_height} vs {second.image_width}x{second.image_height}"
        )
    detections: Sequence[Detection] = first.detections + second.detections
    return DetectionBatch(
        detections=tuple(detections),
        inference_time_ms=first.inference_time_ms + second.inference_time_ms,
        image_width=first.image_width,
        image_height=first.image_height,
    )
