"""Progress reporting and the analysis line budget."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .client import ServiceClient
from .protocol import Command, progress_update, show_error, show_warning


logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    def progress(self, percent: int) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingReporter:
    def progress(self, percent: int) -> None:
        logger.info("Progress: %d%%", percent)

    def warning(self, message: str) -> None:
        logger.warning(message)

    def error(self, message: str) -> None:
        logger.error(message)


class ServiceReporter:
    """Forwards progress and diagnostics to the service as notifications."""

    def __init__(self, client: ServiceClient) -> None:
        self.client = client

    def progress(self, percent: int) -> None:
        self._notify(progress_update(percent))

    def warning(self, message: str) -> None:
        logger.warning(message)
        self._notify(show_warning(message))

    def error(self, message: str) -> None:
        logger.error(message)
        self._notify(show_error(message))

    def _notify(self, command: Command) -> None:
        try:
            self.client.notify(command)
        except RuntimeError as exc:
            logger.warning("Could not send %s notification: %s", command.command, exc)


class ProgressPhase:
    """Maps progress within one pass onto a slice of the overall percentage."""

    def __init__(self, reporter: ProgressReporter, start: int, end: int) -> None:
        self.reporter = reporter
        self.start = start
        self.end = end
        self._last: int | None = None

    def update(self, done: int, total: int) -> None:
        fraction = done / total if total else 1.0
        percent = self.start + int((self.end - self.start) * fraction)
        if percent != self._last:
            self._last = percent
            self.reporter.progress(percent)


@dataclass
class AnalysisBudget:
    limit: int = 500_000
    lines_analysed: int = 0

    def add(self, lines: int) -> None:
        self.lines_analysed += lines

    @property
    def exhausted(self) -> bool:
        return self.lines_analysed >= self.limit
