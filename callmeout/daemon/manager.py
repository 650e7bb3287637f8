"""
Lifecycle supervision for the callmeout daemon process.

The manager resolves the daemon executable, spawns it with the configured
environment, pipes its output to a diagnostic sink and polls the socket
until the daemon answers a ping.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable

from ..config import CallmeoutConfig, DaemonConfig
from ..host import LoggingNotifier, Notifier, OutputSink, logging_output_sink
from .client import DaemonClient

logger = logging.getLogger(__name__)

SOCKET_PATH = "/tmp/callmeout.sock"
DAEMON_RELATIVE_PATH = ("daemon", "target", "release", "callmeout-daemon")
LOG_LEVEL_ENV = "RUST_LOG"
MODEL_PATH_ENV = "CACTUS_MODEL_PATH"

# Time for the process to bind its socket before the first probe.
SPAWN_GRACE_SECONDS = 0.1
POLL_INTERVAL_SECONDS = 0.2
POLL_ATTEMPTS = 15


class DaemonManager:
    def __init__(
        self,
        workspace_root: Path | None,
        *,
        settings: Callable[[], DaemonConfig] | None = None,
        notifier: Notifier | None = None,
        output_sink: OutputSink | None = None,
        socket_path: str = SOCKET_PATH,
        spawn_grace: float = SPAWN_GRACE_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        poll_attempts: int = POLL_ATTEMPTS,
    ):
        self.workspace_root = workspace_root
        self._settings = settings or self._load_settings
        self.notifier = notifier or LoggingNotifier()
        self.output_sink = output_sink or logging_output_sink
        self._socket_path = socket_path
        self.spawn_grace = spawn_grace
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self._process: asyncio.subprocess.Process | None = None
        self._pumps: set[asyncio.Task[None]] = set()
        self._stopping: set[asyncio.subprocess.Process] = set()

    def _load_settings(self) -> DaemonConfig:
        return CallmeoutConfig.load(self.workspace_root).daemon

    def get_daemon_path(self) -> str:
        configured = self._settings().path
        if configured:
            return configured
        if self.workspace_root is not None:
            return str(Path(self.workspace_root, *DAEMON_RELATIVE_PATH))
        return ""

    def get_model_path(self) -> str:
        return self._settings().model_path or ""

    def get_socket_path(self) -> str:
        return self._socket_path

    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    def _build_env(self) -> dict[str, str]:
        env = dict(os.environ)
        env[LOG_LEVEL_ENV] = self._settings().log_level or "debug"
        model_path = self.get_model_path()
        if model_path:
            env[MODEL_PATH_ENV] = model_path
        return env

    async def start(self) -> bool:
        daemon_path = self.get_daemon_path()
        if not daemon_path or not Path(daemon_path).exists():
            self.notifier.error(
                f'callmeout: daemon binary not found at "{daemon_path}". '
                'Run "cargo build --release" in the daemon/ directory.'
            )
            return False
        if self.is_running():
            return True

        logger.info("Starting callmeout daemon: %s", daemon_path)
        try:
            self._process = await asyncio.create_subprocess_exec(
                daemon_path,
                env=self._build_env(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            # Readiness polling below reports the daemon as unresponsive.
            self.notifier.error(f"callmeout daemon error: {exc}")
        else:
            for stream in (self._process.stdout, self._process.stderr):
                if stream is not None:
                    task = asyncio.create_task(self._pump(stream))
                    self._pumps.add(task)
                    task.add_done_callback(self._pumps.discard)

        await asyncio.sleep(self.spawn_grace)

        client = DaemonClient(self._socket_path)
        for attempt in range(self.poll_attempts):
            if await client.ping():
                logger.info("Daemon ready after %d probe(s)", attempt + 1)
                return True
            await asyncio.sleep(self.poll_interval)

        self.notifier.error("callmeout: daemon started but not responding. Check the daemon log.")
        return False

    async def _pump(self, stream: asyncio.StreamReader) -> None:
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                logger.debug("Dropped an overlong daemon output line")
                continue
            if not raw:
                return
            line = raw.decode("utf-8", errors="replace").rstrip()
            try:
                self.output_sink(line)
            except Exception as exc:
                logger.debug("Daemon output sink failed: %s", exc)

    def stop(self) -> None:
        process = self._process
        self._process = None
        if process is None or process.returncode is not None:
            return
        logger.info("Stopping callmeout daemon (pid %s)", process.pid)
        try:
            process.terminate()
        except ProcessLookupError:
            return
        self._stopping.add(process)

    def dispose(self) -> None:
        self.stop()

    async def shutdown(self, timeout: float = 2.0) -> None:
        """Stop the daemon and wait for terminated processes to be reaped."""
        self.stop()
        stopping, self._stopping = self._stopping, set()
        for process in stopping:
            try:
                await asyncio.wait_for(process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Daemon (pid %s) ignored SIGTERM, killing it", process.pid)
                try:
                    process.kill()
                except ProcessLookupError:
                    continue
                await process.wait()
        if self._pumps:
            await asyncio.wait(set(self._pumps), timeout=timeout)
