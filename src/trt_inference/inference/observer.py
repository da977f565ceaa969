"""
Runtime log observers.

The runtime and its backends report through an observer passed to them at
construction, one per session, instead of a process-wide logger.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import List, Optional, Protocol, Tuple


class Severity(IntEnum):
    """Message severity, lower is more severe (TensorRT ordering)."""
    INTERNAL_ERROR = 0
    ERROR = 1
    WARNING = 2
    INFO = 3
    VERBOSE = 4


_LOGGING_LEVELS = {
    Severity.INTERNAL_ERROR: logging.CRITICAL,
    Severity.ERROR: logging.ERROR,
    Severity.WARNING: logging.WARNING,
    Severity.INFO: logging.INFO,
    Severity.VERBOSE: logging.DEBUG,
}


class RuntimeObserver(Protocol):
    def log(self, severity: Severity, message: str) -> None:
        ...


class LoggingObserver:
    """
    Forward runtime messages to a standard library logger.

    Messages less severe than min_severity are dropped.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        min_severity: Severity = Severity.WARNING,
    ):
        self._logger = logger or logging.getLogger("trt_inference.runtime")
        self.min_severity = min_severity

    def log(self, severity: Severity, message: str) -> None:
        if severity > self.min_severity:
            return
        self._logger.log(_LOGGING_LEVELS[Severity(severity)], message)


class RecordingObserver:
    """Keep every message in memory."""

    def __init__(self):
        self.records: List[Tuple[Severity, str]] = []

    def log(self, severity: Severity, message: str) -> None:
        self.records.append((Severity(severity), message))

    def messages(self, severity: Optional[Severity] = None) -> List[str]:
        return [m for s, m in self.records if severity is None or s == severity]

    def clear(self) -> None:
        self.records.clear()
