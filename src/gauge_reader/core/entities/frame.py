"""Container for a decoded image and its metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import numpy as np


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FrameData:
    """Decoded image (H x W x C, BGR) together with where and when it came from."""

    image: np.ndarray
    timestamp: datetime = field(default_factory=_utc_now)
    frame_id: int = 0
    source: Optional[str] = None

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    def copy_with(self, **kwargs) -> "FrameData":
        """Return a copy of the frame with selected fields replaced."""
        values = {
            "image": self.image,
            "timestamp": self.timestamp,
            "frame_id": self.frame_id,
            "source": self.source,
        }
        values.update(kwargs)
        return FrameData(**values)
