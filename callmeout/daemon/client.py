"""
Unix socket client for the callmeout daemon.

Each call opens a fresh connection, writes one framed request, reads one
framed response and closes the connection again.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from ..protocol import DELIMITER, PING, PONG, Envelope

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10.0
_READ_CHUNK = 64 * 1024


class DaemonError(RuntimeError):
    """Base class for failures talking to the daemon."""


class DaemonTimeoutError(DaemonError):
    """Raised when no complete response line arrives before the deadline."""


class DaemonConnectionError(DaemonError):
    """Raised when the socket cannot be reached or drops mid-exchange."""


class DaemonProtocolError(DaemonError):
    """Raised when the response line is not a valid envelope."""


class DaemonClient:
    def __init__(self, socket_path: str, timeout: float = REQUEST_TIMEOUT_SECONDS):
        self.socket_path = socket_path
        self.timeout = timeout

    async def send(self, type: str, payload: Any, timeout: float | None = None) -> Envelope:
        deadline = self.timeout if timeout is None else timeout
        try:
            line = await asyncio.wait_for(self._exchange(Envelope(type, payload)), timeout=deadline)
        except asyncio.TimeoutError as exc:
            raise DaemonTimeoutError("callmeout: daemon request timed out") from exc

        try:
            return Envelope.from_line(line)
        except ValueError as exc:
            raise DaemonProtocolError(f"callmeout: invalid JSON from daemon: {line}") from exc

    async def _exchange(self, request: Envelope) -> str:
        try:
            reader, writer = await asyncio.open_unix_connection(self.socket_path)
        except OSError as exc:
            raise DaemonConnectionError(f"callmeout: cannot connect to {self.socket_path}: {exc}") from exc

        try:
            writer.write(request.to_line())
            await writer.drain()

            buffer = b""
            while DELIMITER not in buffer:
                chunk = await reader.read(_READ_CHUNK)
                if not chunk:
                    raise DaemonConnectionError("callmeout: daemon closed the connection before responding")
                buffer += chunk
        except OSError as exc:
            raise DaemonConnectionError(f"callmeout: connection to daemon failed: {exc}") from exc
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

        # Anything after the first delimiter belongs to no request.
        raw, _, _ = buffer.partition(DELIMITER)
        # Undecodable bytes stay visible in protocol errors.
        return raw.decode("utf-8", errors="backslashreplace")

    async def ping(self) -> bool:
        try:
            response = await self.send(PING, None)
        except Exception as exc:
            logger.debug("Daemon ping failed: %s", exc)
            return False
        return response.type == PONG
