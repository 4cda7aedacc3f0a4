"""Exception types raised by the reading pipeline."""


class GaugeReaderError(Exception):
    """Base error for the application."""


class DetectorError(GaugeReaderError):
    """Model not loaded, invalid image or inference runtime failure."""


class NoImageError(GaugeReaderError):
    """A prediction was requested before any image was supplied."""


class PipelineClosedError(GaugeReaderError):
    """The pipeline has been shut down and no longer accepts work."""


class PipelineBusyError(GaugeReaderError):
    """The pipeline job queue is full."""
