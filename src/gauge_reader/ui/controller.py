"""Caller-side controller tying the image, the pipeline and the overlay together."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, Tuple

from gauge_reader.core.entities import Detection, DisplayRect, FrameData, OverlayBox
from gauge_reader.core.errors import NoImageError, PipelineBusyError, PipelineClosedError
from gauge_reader.core.overlay import fit_display_rect, remap_detections
from gauge_reader.core.reading import (
    DEFAULT_RULES,
    Reading,
    VocabularyRules,
    reconstruct_reading,
    select_overlay_detections,
)
from gauge_reader.state_machine import TwoStagePipeline

logger = logging.getLogger("ui.controller")


class RenderTarget(Protocol):
    """Anything that can show overlay boxes or be told to clear them."""

    def set_results(self, boxes: Sequence[OverlayBox]) -> None: ...

    def clear(self) -> None: ...


class ReadingController:
    """Owns the selected image and the UI state around one reading screen.

    All methods are meant to be called from the caller's thread; pipeline
    outcomes arrive here through ``pump``.
    """

    def __init__(
        self,
        pipeline: TwoStagePipeline,
        render_target: RenderTarget,
        rules: VocabularyRules = DEFAULT_RULES,
        view_size: Optional[Tuple[int, int]] = None,
    ) -> None:
        self._pipeline = pipeline
        self._render = render_target
        self._rules = rules
        self._view_size = view_size
        self._frame: Optional[FrameData] = None

        self.ui_enabled = True
        self.result_text = ""
        self.last_reading: Optional[Reading] = None
        self.last_inference_ms: Optional[int] = None
        self.last_display_rect: Optional[DisplayRect] = None

    @property
    def selected_frame(self) -> Optional[FrameData]:
        return self._frame

    def select_image(self, frame: Optional[FrameData]) -> None:
        """Use ``frame`` for the next prediction and drop the previous overlay."""
        self._frame = frame
        self._render.clear()
        self.result_text = ""
        self.last_reading = None
        if frame is not None:
            logger.info("Image selected from %s (%dx%d)", frame.source, frame.width, frame.height)

    def set_view_size(self, view_size: Optional[Tuple[int, int]]) -> None:
        self._view_size = view_size

    def display_rect(self, image_width: int, image_height: int) -> Optional[DisplayRect]:
        """Where an image of the given size is drawn in the view, if it is laid out."""
        if self._view_size is None:
            return None
        return fit_display_rect(image_width, image_height, self._view_size[0], self._view_size[1])

    def predict(self, rotation_degrees: int = 0) -> bool:
        """Submit the selected image; returns False when nothing was dispatched."""
        try:
            self._pipeline.submit(self._frame, rotation_degrees)
        except NoImageError as exc:
            logger.warning("Prediction requested without an image.")
            self.on_error(str(exc))
            return False
        except (PipelineBusyError, PipelineClosedError) as exc:
            logger.warning("Prediction rejected: %s", exc)
            self.on_error(str(exc))
            return False
        self._set_ui_enabled(False)
        return True

    def pump(self) -> int:
        """Deliver pending pipeline outcomes on this thread."""
        return self._pipeline.dispatch_pending(self)

    def close(self) -> None:
        self._pipeline.shutdown()
        self._render.clear()

    # PipelineListener ---------------------------------------------------------

    def on_results(
        self,
        detections: Sequence[Detection],
        inference_time_ms: int,
        image_height: int,
        image_width: int,
    ) -> None:
        reading = reconstruct_reading(detections, self._rules)
        self.last_reading = reading
        self.last_inference_ms = inference_time_ms
        self.result_text = reading.text
        logger.info("Reading: %s (%d detections, %d ms)", reading.text, len(detections), inference_time_ms)

        overlay = select_overlay_detections(detections, self._rules)
        self.last_display_rect = self.display_rect(image_width, image_height)
        boxes = remap_detections(overlay, image_width, image_height, self.last_display_rect)
        if boxes is None:
            self._render.clear()
        else:
            self._render.set_results(boxes)
        self._set_ui_enabled(True)

    def on_error(self, message: str) -> None:
        logger.error("Detector error: %s", message)
        self.result_text = f"Error: {message}"
        self._set_ui_enabled(True)

    def _set_ui_enabled(self, enabled: bool) -> None:
        self.ui_enabled = enabled
