"""Error reporting port.

Persistence, audit and notification failures are handed to an ErrorReporter
together with a user-facing message key. The default reporter logs through
structlog; hosts can install their own with set_error_reporter().
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


class ErrorReporter(ABC):
    @abstractmethod
    def handle_error(self, error: BaseException, message_key: Optional[str] = None) -> None:
        ...


class LoggingErrorReporter(ErrorReporter):
    def handle_error(self, error: BaseException, message_key: Optional[str] = None) -> None:
        logger.error(
            "operation_failed",
            message_key=message_key,
            error_type=type(error).__name__,
            error=str(error),
        )


class RecordingErrorReporter(ErrorReporter):
    """Keeps reported errors in memory for test assertions."""

    def __init__(self):
        self.errors: List[Tuple[BaseException, Optional[str]]] = []

    def handle_error(self, error: BaseException, message_key: Optional[str] = None) -> None:
        self.errors.append((error, message_key))

    @property
    def message_keys(self) -> List[Optional[str]]:
        return [key for _, key in self.errors]

    def reset(self):
        self.errors.clear()


_current_reporter: Optional[ErrorReporter] = None


def get_error_reporter() -> ErrorReporter:
    global _current_reporter
    if _current_reporter is None:
        _current_reporter = LoggingErrorReporter()
    return _current_reporter


def set_error_reporter(reporter: ErrorReporter) -> None:
    global _current_reporter
    _current_reporter = reporter


def reset_error_reporter() -> None:
    global _current_reporter
    _current_reporter = None
