"""Wait-state machine of the two-stage reading pipeline."""

from __future__ import annotations

import enum
import logging
import threading

from statemachine import State, StateMachine

logger = logging.getLogger("pipeline.state_machine")


class WaitState(enum.Enum):
    """Which detector result the pipeline is currently waiting for."""

    NONE = "none"
    WAIT_UNIT = "wait_unit"
    WAIT_MEASUREMENT = "wait_measurement"


class WaitStateMachine(StateMachine):
    """NONE -> WAIT_UNIT -> WAIT_MEASUREMENT -> NONE, with ``abort`` back to NONE.

    Transitions happen on the pipeline worker only. Other threads read the
    ``busy`` flag, which is backed by a ``threading.Event``.
    """

    idle = State("NONE", value=WaitState.NONE, initial=True)
    wait_unit = State("WAIT_UNIT", value=WaitState.WAIT_UNIT)
    wait_measurement = State("WAIT_MEASUREMENT", value=WaitState.WAIT_MEASUREMENT)

    submit = idle.to(wait_unit)
    unit_received = wait_unit.to(wait_measurement)
    measurement_received = wait_measurement.to(idle)
    abort = wait_unit.to(idle) | wait_measurement.to(idle)

    def __init__(self) -> None:
        self._idle_flag = threading.Event()
        self._idle_flag.set()
        super().__init__()

    def before_transition(self, event: str, source: State, target: State) -> None:
        logger.debug("Wait state %s -> %s (trigger: %s)", source.id, target.id, event)

    def on_enter_idle(self) -> None:
        self._idle_flag.set()

    def on_exit_idle(self) -> None:
        self._idle_flag.clear()

    @property
    def wait_state(self) -> WaitState:
        return self.current_state.value

    @property
    def busy(self) -> bool:
        """True while a run is between submit and its final result or error."""
        return not self._idle_flag.is_set()
