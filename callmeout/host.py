"""
Interfaces the host application provides to the runtime.

A host (an editor extension, or the bundled CLI) hands the runtime:

- a Presenter that renders analysis progress and results
- a Notifier that raises host-level error notifications
- an output sink that receives daemon diagnostic lines
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

OutputSink = Callable[[str], None]


@runtime_checkable
class Presenter(Protocol):
    """Fire-and-forget surface for one analysis run."""

    def show(self) -> None:
        """Make the report surface visible."""
        ...

    def set_loading(self, loading: bool) -> None:
        ...

    def set_result(self, result: Any) -> None:
        """Receive the daemon's report payload, unmodified."""
        ...

    def set_error(self, message: str) -> None:
        ...


@runtime_checkable
class Notifier(Protocol):
    """Host-level notifications for infrastructure failures."""

    def error(self, message: str) -> None:
        ...


class LoggingNotifier:
    """Notifier used when the host supplies none."""

    def error(self, message: str) -> None:
        logger.error(message)


def logging_output_sink(line: str) -> None:
    logger.debug("[daemon] %s", line)
