"""Two-stage sequential reading pipeline.

The unit detector and the measurement detector run one after the other on a
single dedicated worker thread. Results travel back to the caller as events on
an ``EventBus`` which the caller drains on its own thread with
``dispatch_pending``.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from typing import Dict, Optional, Protocol, Sequence

from gauge_reader.config.models import PipelineConfig
from gauge_reader.core.detector import DetectorBase
from gauge_reader.core.entities import Detection, DetectionBatch, FrameData, merge_batches
from gauge_reader.core.errors import NoImageError, PipelineBusyError, PipelineClosedError
from gauge_reader.infra.exceptions import clear_thread_context, set_thread_context
from gauge_reader.services import (
    EventBus,
    PipelineErrorEvent,
    PipelineResultEvent,
    PredictRequest,
    Stage,
    StopEvent,
)
from gauge_reader.state_machine.machine import WaitState, WaitStateMachine

logger = logging.getLogger("pipeline.orchestrator")

_EXPECTED_STATE = {
    Stage.UNIT: WaitState.WAIT_UNIT,
    Stage.MEASUREMENT: WaitState.WAIT_MEASUREMENT,
}


class PipelineListener(Protocol):
    """Receives the outcome of each submitted image on the caller's thread."""

    def on_results(
        self,
        detections: Sequence[Detection],
        inference_time_ms: int,
        image_height: int,
        image_width: int,
    ) -> None: ...

    def on_error(self, message: str) -> None: ...


class TwoStagePipeline:
    """Runs the unit detector then the measurement detector on the same image.

    Submissions queue behind the run in progress (FIFO, bounded by
    ``PipelineConfig.queue_size``); an in-flight run cannot be cancelled. Each
    accepted submission yields exactly one ``PipelineResultEvent`` or exactly
    one ``PipelineErrorEvent`` unless the pipeline is shut down first.
    """

    def __init__(
        self,
        unit_detector: DetectorBase,
        measurement_detector: DetectorBase,
        results_bus: Optional[EventBus] = None,
        config: Optional[PipelineConfig] = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._detectors: Dict[Stage, DetectorBase] = {
            Stage.UNIT: unit_detector,
            Stage.MEASUREMENT: measurement_detector,
        }
        self._machine = WaitStateMachine()
        self._stage_batches: Dict[Stage, DetectionBatch] = {}
        self._jobs = EventBus(maxsize=self._config.queue_size)
        # Unbounded: an accepted request must never lose its outcome.
        self.results = results_bus or EventBus(maxsize=0)

        self._worker: Optional[threading.Thread] = None
        self._worker_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._closed = threading.Event()
        self._pending = 0
        self._pending_cond = threading.Condition()
        self._request_ids = itertools.count(1)

    # Caller API ---------------------------------------------------------------

    @property
    def wait_state(self) -> WaitState:
        return self._machine.wait_state

    @property
    def busy(self) -> bool:
        return self._machine.busy

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def start(self) -> None:
        """Launch the worker thread if it is not running yet."""
        with self._worker_lock:
            self._ensure_worker_locked()

    def _ensure_worker_locked(self) -> None:
        if self._closed.is_set():
            raise PipelineClosedError("Pipeline has been shut down.")
        if self._worker and self._worker.is_alive():
            return
        self._stop_event.clear()
        self._worker = threading.Thread(target=self._run, name="ReadingPipelineWorker", daemon=True)
        self._worker.start()

    def submit(self, frame: Optional[FrameData], rotation_degrees: int = 0) -> int:
        """Queue ``frame`` for reading and return its request id without blocking.

        Raises ``NoImageError`` when ``frame`` is None, ``PipelineClosedError``
        after shutdown and ``PipelineBusyError`` when the job queue is full.
        """
        if frame is None:
            raise NoImageError("Select an image before predicting.")
        # Queueing happens under the worker lock so it cannot interleave with
        # shutdown or with another caller starting the worker.
        with self._worker_lock:
            self._ensure_worker_locked()
            request = PredictRequest(
                frame=frame, rotation_degrees=rotation_degrees, request_id=next(self._request_ids)
            )
            with self._pending_cond:
                self._pending += 1
            if not self._jobs.publish(request):
                self._job_done()
                raise PipelineBusyError("Too many images waiting to be read; try again later.")
        logger.info(
            "Queued request %d (%dx%d, rotation %d)",
            request.request_id,
            frame.width,
            frame.height,
            rotation_degrees,
        )
        return request.request_id

    def dispatch_pending(self, listener: PipelineListener) -> int:
        """Deliver queued outcomes to ``listener`` on the calling thread.

        Returns the number of callbacks made. After shutdown outcomes are
        discarded and 0 is returned.
        """
        events = self.results.drain()
        if self._closed.is_set():
            if events:
                logger.debug("Pipeline closed; dropping %d undelivered events.", len(events))
            return 0

        delivered = 0
        for event in events:
            if isinstance(event, PipelineResultEvent):
                listener.on_results(
                    list(event.detections),
                    event.inference_time_ms,
                    event.image_height,
                    event.image_width,
                )
            elif isinstance(event, PipelineErrorEvent):
                listener.on_error(event.message)
            else:
                logger.debug("Ignoring unexpected event on results bus: %s", type(event).__name__)
                continue
            delivered += 1
        return delivered

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every accepted request has produced its outcome."""
        with self._pending_cond:
            return self._pending_cond.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop accepting work and stop the worker.

        Queued requests are abandoned and outcomes produced after this call are
        dropped. A run already inside a detector is not interrupted.
        """
        if self._closed.is_set():
            return
        with self._worker_lock:
            self._closed.set()
            self._stop_event.set()
            worker = self._worker
        self._jobs.stop("pipeline shutdown")

        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=self._config.shutdown_timeout_s if timeout is None else timeout)
            if worker.is_alive():
                logger.warning("Pipeline worker still busy after shutdown timeout; its result will be dropped.")

        abandoned = [event for event in self._jobs.drain() if isinstance(event, PredictRequest)]
        self.results.drain()
        with self._pending_cond:
            self._pending = 0
            self._pending_cond.notify_all()
        logger.info("Pipeline shut down (%d queued requests abandoned).", len(abandoned))

    # Worker -------------------------------------------------------------------

    def handle_stage_result(self, stage: Stage, batch: DetectionBatch, request_id: int = 0) -> bool:
        """Record a stage result and advance the wait state.

        Must only be called from the worker. A result the current state does not
        expect is a protocol violation: it is logged and discarded and False is
        returned.
        """
        state = self._machine.wait_state
        if state is not _EXPECTED_STATE[stage]:
            logger.warning(
                "Protocol violation: %s result for request %d arrived in state %s; discarding.",
                stage.value,
                request_id,
                state.name,
            )
            return False

        self._stage_batches[stage] = batch
        if stage is Stage.UNIT:
            self._machine.unit_received()
            return True

        try:
            combined = merge_batches(self._stage_batches[Stage.UNIT], batch)
        except ValueError as exc:
            logger.error("Request %d: %s", request_id, exc)
            self._fail(stage, f"Internal error: {exc}", request_id)
            return False

        self._stage_batches.clear()
        logger.info(
            "Request %d complete: %d detections in %d ms",
            request_id,
            len(combined),
            combined.inference_time_ms,
        )
        self._machine.measurement_received()
        self._deliver(
            PipelineResultEvent(
                detections=combined.detections,
                inference_time_ms=combined.inference_time_ms,
                image_height=combined.image_height,
                image_width=combined.image_width,
                request_id=request_id,
            )
        )
        return True

    def _run(self) -> None:
        logger.info("Pipeline worker started.")
        while not self._stop_event.is_set():
            try:
                event = self._jobs.get(timeout=self._config.poll_interval_s)
            except queue.Empty:
                continue

            if isinstance(event, StopEvent):
                logger.info("Pipeline worker received stop event: %s", event.reason)
                break
            if not isinstance(event, PredictRequest):
                logger.debug("Ignoring unexpected job %s", type(event).__name__)
                continue

            set_thread_context(request_id=event.request_id)
            try:
                self._process(event)
            except Exception as exc:
                logger.exception("Unexpected error while processing request %d", event.request_id)
                self._fail(None, f"Internal error: {exc}", event.request_id)
            finally:
                self._job_done()
            clear_thread_context()
        logger.info("Pipeline worker stopped.")

    def _process(self, request: PredictRequest) -> None:
        if self._closed.is_set():
            logger.debug("Dropping request %d queued before shutdown.", request.request_id)
            return

        self._stage_batches.clear()
        self._machine.submit()
        for stage in (Stage.UNIT, Stage.MEASUREMENT):
            detector = self._detectors[stage]
            try:
                batch = detector.detect(request.frame, request.rotation_degrees)
            except Exception as exc:
                logger.error("Request %d: %s stage failed: %s", request.request_id, stage.value, exc)
                self._fail(stage, f"{stage.value.capitalize()} detection failed: {exc}", request.request_id)
                return
            logger.debug(
                "Request %d: %s stage produced %d detections",
                request.request_id,
                stage.value,
                len(batch),
            )
            if not self.handle_stage_result(stage, batch, request.request_id):
                break

        if self._machine.wait_state is not WaitState.NONE:
            logger.error(
                "Request %d left the pipeline in state %s; resetting.",
                request.request_id,
                self._machine.wait_state.name,
            )
            self._fail(None, "Internal error: reading was interrupted.", request.request_id)

    def _fail(self, stage: Optional[Stage], message: str, request_id: int) -> None:
        if self._machine.wait_state is not WaitState.NONE:
            self._machine.abort()
        self._stage_batches.clear()
        self._deliver(PipelineErrorEvent(message=message, stage=stage, request_id=request_id))

    def _deliver(self, event: object) -> None:
        if self._closed.is_set():
            logger.debug("Pipeline closed; dropping %s.", type(event).__name__)
            return
        if not self.results.publish(event):
            logger.error("Results bus rejected %s; the caller will not be notified.", type(event).__name__)

    def _job_done(self) -> None:
        with self._pending_cond:
            self._pending = max(0, self._pending - 1)
            if self._pending == 0:
                self._pending_cond.notify_all()
