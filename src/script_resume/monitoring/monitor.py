"""Session monitoring.

This module tracks what happens during one launch of a script:
- Event dispatch to registered handlers
- Stage and checkpoint counters
- Stage timing
"""

import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional

import logging
logger = logging.getLogger(__name__)

from .events import EventFactory, EventType, MonitoringEvent

_METRIC_FOR_EVENT = {
    EventType.STAGE_COMPLETED: "executed",
    EventType.STAGE_SKIPPED: "skipped",
    EventType.STAGE_FAILED: "failed",
    EventType.CHECKPOINT_SAVED: "checkpoints",
    EventType.CHECKPOINT_WRITE_FAILED: "write_failures",
}


class SessionMonitor:
    """Collects events and metrics for one execution session."""

    def __init__(self, keep_events: bool = True):
        """Initialize the session monitor.

        Args:
            keep_events: Whether to keep emitted events for later inspection
        """
        self.keep_events = keep_events
        self.events: List[MonitoringEvent] = []
        self.metrics: Dict[str, int] = {name: 0 for name in _METRIC_FOR_EVENT.values()}
        self._handlers: Dict[EventType, List[Callable[[MonitoringEvent], None]]] = defaultdict(list)
        self._started = time.monotonic()

    def register_handler(
        self,
        event_type: EventType,
        handler: Callable[[MonitoringEvent], None]
    ) -> None:
        """Register an event handler.

        Args:
            event_type: Type of event to handle
            handler: Handler function
        """
        self._handlers[event_type].append(handler)

    def emit(self, event: MonitoringEvent) -> None:
        """Record an event and pass it to its handlers.

        Handler errors are logged and never reach the script.
        """
        if self.keep_events:
            self.events.append(event)

        metric = _METRIC_FOR_EVENT.get(event.event_type)
        if metric is not None:
            self.metrics[metric] += 1

        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler: {e}", exc_info=True)

    def events_of(self, event_type: EventType) -> List[MonitoringEvent]:
        return [event for event in self.events if event.event_type == event_type]

    def summary(self) -> str:
        """One-line summary of the launch."""
        elapsed = time.monotonic() - self._started
        return (
            f"{self.metrics['executed']} stage(s) executed, "
            f"{self.metrics['skipped']} skipped, "
            f"{self.metrics['failed']} failed, "
            f"{self.metrics['checkpoints']} checkpoint(s) saved "
            f"in {elapsed:.2f}s"
        )


class StageTimer:
    """Context manager emitting started/completed/failed events for a stage."""

    def __init__(
        self,
        monitor: SessionMonitor,
        script_path: str,
        stage: str,
        ordinal: Optional[int] = None
    ):
        self.monitor = monitor
        self.script_path = script_path
        self.stage = stage
        self.ordinal = ordinal
        self.start_time = None
        self.duration_ms: Optional[int] = None

    def __enter__(self):
        """Enter the context."""
        self.start_time = time.monotonic()
        self.monitor.emit(EventFactory.stage(
            EventType.STAGE_STARTED, self.script_path, self.stage, self.ordinal
        ))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit the context."""
        self.duration_ms = int((time.monotonic() - self.start_time) * 1000)

        if exc_type is None:
            event = EventFactory.stage(
                EventType.STAGE_COMPLETED,
                self.script_path,
                self.stage,
                self.ordinal,
                duration_ms=self.duration_ms
            )
        else:
            event = EventFactory.stage(
                EventType.STAGE_FAILED,
                self.script_path,
                self.stage,
                self.ordinal,
                duration_ms=self.duration_ms,
                error=f"{exc_type.__name__}: {exc_val}"
            )

        self.monitor.emit(event)
        return False
