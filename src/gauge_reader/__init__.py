"""Read the value and unit shown on a scale display with two YOLO detectors."""

__version__ = "0.1.0"
