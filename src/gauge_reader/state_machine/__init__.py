"""Wait-state machine and the two-stage pipeline it drives."""

from .machine import WaitState, WaitStateMachine
from .pipeline import PipelineListener, TwoStagePipeline

__all__ = [
    "PipelineListener",
    "TwoStagePipeline",
    "WaitState",
    "WaitStateMachine",
]
