"""Thread-safe event bus used to pass messages between threads."""

from __future__ import annotations

import logging
import queue
from typing import List, Optional

from .events import StopEvent

logger = logging.getLogger("services.event_bus")


class EventBus:
    """Bounded FIFO of events; any thread may publish, one consumer drains it."""

    def __init__(self, maxsize: int = 256) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)

    def publish(self, event: object) -> bool:
        """Enqueue an event; returns False and logs a warning when the queue is full."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning("Event bus queue full; dropping event %s", event)
            return False
        return True

    def get(self, timeout: Optional[float] = None) -> object:
        """Next event, waiting up to ``timeout`` seconds; raises queue.Empty."""
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> object:
        return self._queue.get_nowait()

    def drain(self) -> List[object]:
        """Remove and return every event currently queued."""
        events: List[object] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def empty(self) -> bool:
        return self._queue.empty()

    def stop(self, reason: str | None = None) -> bool:
        """Publish a StopEvent so the consumer loop ends."""
        return self.publish(StopEvent(reason=reason))
