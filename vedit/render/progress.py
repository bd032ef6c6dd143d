"""
Render progress events.

The execution boundary reports a start event carrying the command line,
percentage progress events and one terminal event (complete or error).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RenderEventType(Enum):
    START = "start"
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class RenderEvent:
    """One event emitted while rendering."""
    type: RenderEventType
    percent: float = 0.0
    message: str = ""
    stage: str = ""
    command: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def terminal(self) -> bool:
        return self.type in (RenderEventType.COMPLETE, RenderEventType.ERROR)


Listener = Callable[[RenderEvent], None]


class ProgressTracker:
    """
    Tracks progress for one render and fans events out to listeners.

    Percentages are clamped to 0..100 and never move backwards. Listener
    failures are logged and do not interrupt the render.

    Example:
        tracker = ProgressTracker("colorGrade")
        unsubscribe = tracker.subscribe(lambda e: print(e.percent))
        tracker.start("ffmpeg -i in.mp4 ...")
        tracker.update(40, "Encoding")
        tracker.complete()
    """

    def __init__(self, operation: str = ""):
        self.operation = operation
        self.percent = 0.0
        self.stage = ""
        self.message = ""
        self.finished = False
        self.events: list[RenderEvent] = []
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: RenderEvent):
        self.events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Progress listener failed for {self.operation}: {e}")

    def start(self, command: str):
        logger.info(f"Render started: {command}")
        self._emit(RenderEvent(
            RenderEventType.START, 0.0, "Render started", self.stage, command=command
        ))

    def set_stage(self, stage: str):
        self.stage = stage

    def update(self, percent: float, message: str = "", stage: Optional[str] = None):
        if self.finished:
            return
        if stage is not None:
            self.stage = stage
        percent = min(max(float(percent), 0.0), 100.0)
        if percent < self.percent:
            return
        self.percent = percent
        self.message = message
        self._emit(RenderEvent(RenderEventType.PROGRESS, percent, message, self.stage))

    def complete(self, message: str = "Render complete"):
        if self.finished:
            return
        self.finished = True
        self.percent = 100.0
        self.message = message
        logger.info(f"{self.operation or 'Render'}: {message}")
        self._emit(RenderEvent(RenderEventType.COMPLETE, 100.0, message, self.stage))

    def fail(self, message: str):
        if self.finished:
            return
        self.finished = True
        self.message = message
        logger.error(f"{self.operation or 'Render'} failed: {message}")
        self._emit(RenderEvent(RenderEventType.ERROR, self.percent, message, self.stage))

    def get_progress(self) -> dict:
        return {
            "operation": self.operation,
            "percent": self.percent,
            "stage": self.stage,
            "message": self.message,
            "finished": self.finished,
        }
