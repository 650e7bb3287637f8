"""Daemon process supervision and socket transport."""

from .client import (
    DaemonClient,
    DaemonConnectionError,
    DaemonError,
    DaemonProtocolError,
    DaemonTimeoutError,
)
from .manager import SOCKET_PATH, DaemonManager

__all__ = [
    "DaemonClient",
    "DaemonConnectionError",
    "DaemonError",
    "DaemonManager",
    "DaemonProtocolError",
    "DaemonTimeoutError",
    "SOCKET_PATH",
]
