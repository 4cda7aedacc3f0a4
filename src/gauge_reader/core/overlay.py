"""Mapping of detection boxes from image pixels into display coordinates."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from gauge_reader.core.entities import Detection, DisplayRect, OverlayBox

logger = logging.getLogger("core.overlay")


def remap_detections(
    detections: Sequence[Detection],
    image_width: int,
    image_height: int,
    display_rect: Optional[DisplayRect],
) -> Optional[List[OverlayBox]]:
    """Scale boxes from an ``image_width`` x ``image_height`` frame into ``display_rect``.

    Each axis is scaled independently; letterboxing must already be reflected in
    ``display_rect``. Returns ``None`` when no mapping is possible (missing or
    empty display rectangle, zero-sized image) so the caller can clear the
    overlay. An empty list means the mapping is valid but there is nothing to draw.
    """
    if display_rect is None or display_rect.is_empty():
        logger.debug("No display rectangle available; overlay mapping skipped.")
        return None
    if image_width <= 0 or image_height <= 0:
        logger.debug("Image size %sx%s cannot be mapped.", image_width, image_height)
        return None

    sx = display_rect.width / float(image_width)
    sy = display_rect.height / float(image_height)

    mapped: List[OverlayBox] = []
    for det in detections:
        box = det.bbox
        mapped.append(
            OverlayBox(
                left=display_rect.left + box.left * sx,
                top=display_rect.top + box.top * sy,
                right=display_rect.left + box.right * sx,
                bottom=display_rect.top + box.bottom * sy,
                label=det.label,
                confidence=det.confidence,
            )
        )
    return mapped


def fit_display_rect(image_width: int, image_height: int, view_width: int, view_height: int) -> Optional[DisplayRect]:
    """Centered, aspect-preserving placement of an image inside a view.

    Returns ``None`` when either size is degenerate.
    """
    if image_width <= 0 or image_height <= 0 or view_width <= 0 or view_height <= 0:
        return None
    scale = min(view_width / float(image_width), view_height / float(image_height))
    width = image_width * scale
    height = image_height * scale
    return DisplayRect(
        left=(view_width - width) / 2.0,
        top=(view_height - height) / 2.0,
        width=width,
        height=height,
    )
