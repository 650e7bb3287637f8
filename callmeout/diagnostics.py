"""
Logging setup for the callmeout CLI.

Stdlib logging from the library modules is routed into loguru, which writes
to stderr and to ~/.callmeout/callmeout.log. Daemon stdout/stderr lines go to
their own file, ~/.callmeout/daemon.log.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

from .config import ensure_callmeout_dir


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward Loguru sinks."""
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _is_daemon_record(record: dict) -> bool:
    return record["extra"].get("source") == "daemon"


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru sinks and intercept stdlib logging."""
    log_dir = ensure_callmeout_dir()

    logger.remove()

    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        colorize=True,
        filter=lambda record: not _is_daemon_record(record),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
    )
    logger.add(
        str(log_dir / "callmeout.log"),
        level="DEBUG",
        rotation="10 MB",
        retention="1 week",
        filter=lambda record: not _is_daemon_record(record),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )
    logger.add(
        str(log_dir / "daemon.log"),
        level="DEBUG",
        rotation="10 MB",
        retention="1 week",
        filter=_is_daemon_record,
        format="{time:YYYY-MM-DD HH:mm:ss} | {message}",
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def daemon_output_sink(line: str) -> None:
    """Send one line of daemon output to the daemon log."""
    if line:
        logger.bind(source="daemon").debug(line)
