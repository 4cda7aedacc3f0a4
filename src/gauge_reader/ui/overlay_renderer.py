"""OpenCV render target drawing detection boxes over the displayed image."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from gauge_reader.config.models import OverlayConfig
from gauge_reader.core.entities import DisplayRect, OverlayBox

logger = logging.getLogger("ui.overlay")

_TEXT_PADDING = 6


class OverlayRenderer:
    """Holds the boxes to draw and paints them onto a view-sized canvas."""

    def __init__(self, config: Optional[OverlayConfig] = None) -> None:
        self._config = config or OverlayConfig()
        self._boxes: List[OverlayBox] = []

    @property
    def boxes(self) -> Tuple[OverlayBox, ...]:
        return tuple(self._boxes)

    def set_results(self, boxes: Sequence[OverlayBox]) -> None:
        self._boxes = list(boxes)
        logger.debug("Overlay updated with %d boxes", len(self._boxes))

    def clear(self) -> None:
        self._boxes = []

    def compose(
        self,
        image: np.ndarray,
        display_rect: Optional[DisplayRect],
        view_size: Tuple[int, int],
    ) -> np.ndarray:
        """Letterbox ``image`` into ``display_rect`` on a black canvas and draw the overlay."""
        view_width, view_height = int(view_size[0]), int(view_size[1])
        canvas = np.zeros((view_height, view_width, 3), dtype=np.uint8)
        if display_rect is None or display_rect.is_empty():
            return canvas

        x1, y1 = int(round(display_rect.left)), int(round(display_rect.top))
        x2 = min(view_width, x1 + int(round(display_rect.width)))
        y2 = min(view_height, y1 + int(round(display_rect.height)))
        if x2 <= x1 or y2 <= y1:
            return canvas
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        canvas[y1:y2, x1:x2] = cv2.resize(image, (x2 - x1, y2 - y1), interpolation=cv2.INTER_AREA)
        return self.draw(canvas)

    def draw(self, canvas: np.ndarray) -> np.ndarray:
        """Draw the current boxes with ``"<label> <NN>%"`` captions onto ``canvas`` in place."""
        if not self._config.enabled:
            return canvas
        box_color = tuple(int(c) for c in self._config.box_color)
        text_color = tuple(int(c) for c in self._config.text_color)
        background = tuple(int(c) for c in self._config.text_background)
        thickness = self._config.thickness
        font_scale = self._config.font_scale

        for box in self._boxes:
            x1, y1, x2, y2 = (int(round(v)) for v in (box.left, box.top, box.right, box.bottom))
            cv2.rectangle(canvas, (x1, y1), (x2, y2), box_color, thickness)

            caption = box.caption()
            (text_w, text_h), baseline = cv2.getTextSize(caption, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 1)
            bg_top = max(0, y1 - text_h - baseline - 2 * _TEXT_PADDING)
            cv2.rectangle(
                canvas,
                (x1, bg_top),
                (x1 + text_w + 2 * _TEXT_PADDING, max(bg_top + 1, y1)),
                background,
                cv2.FILLED,
            )
            cv2.putText(
                canvas,
                caption,
                (x1 + _TEXT_PADDING, max(text_h, y1 - baseline - _TEXT_PADDING)),
                cv2.FONT_HERSHEY_SIMPLEX,
                font_scale,
                text_color,
                1,
                cv2.LINE_AA,
            )
        return canvas
