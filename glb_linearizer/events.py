"""
Append-only log-event stream delivered to callers while a conversion runs.

Every event is also mirrored to the stdlib logger so CLI runs and library
callers see the same messages.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger("glb_linearizer")


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class LogEvent:
    message: str
    severity: Severity = Severity.INFO


EventCallback = Callable[[LogEvent], None]


class EventLog:
    """Collects events for one run and forwards each to an optional callback."""

    def __init__(self, callback: Optional[EventCallback] = None):
        self._callback = callback
        self.events: List[LogEvent] = []

    def emit(self, message: str, severity: Severity = Severity.INFO) -> LogEvent:
        event = LogEvent(message, Severity(severity))
        self.events.append(event)
        logger.log(_LOG_LEVELS[event.severity], message)
        if self._callback is not None:
            self._callback(event)
        return event

    def info(self, message: str) -> LogEvent:
        return self.emit(message, Severity.INFO)

    def success(self, message: str) -> LogEvent:
        return self.emit(message, Severity.SUCCESS)

    def warning(self, message: str) -> LogEvent:
        return self.emit(message, Severity.WARNING)

    def error(self, message: str) -> LogEvent:
        return self.emit(message, Severity.ERROR)

    def by_severity(self, severity: Severity) -> List[LogEvent]:
        return [e for e in self.events if e.severity == severity]
