"""Caller-side controller and OpenCV overlay rendering."""

from .controller import ReadingController, RenderTarget
from .overlay_renderer import OverlayRenderer

__all__ = ["OverlayRenderer", "ReadingController", "RenderTarget"]
