"""
Analysis orchestration: one diff, one daemon request, one report at a time.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterator

from .daemon.client import DaemonClient
from .daemon.manager import DaemonManager
from .git import collect_diff, parse_files_from_diff
from .host import LoggingNotifier, Notifier, Presenter
from .protocol import ANALYSIS_RESULT, ANALYZE_DIFF, ERROR, AnalysisRequest, Trigger, error_message

logger = logging.getLogger(__name__)

DiffCollector = Callable[[Path], Awaitable[str]]

NO_WORKSPACE_MESSAGE = "callmeout: No workspace open."
NO_CHANGES_MESSAGE = "No changes detected in this repo."
SAVE_DEBOUNCE_SECONDS = 1.5


class RunState(str, enum.Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    REQUESTING = "requesting"


class AnalysisOrchestrator:
    """
    Drives analysis runs for manual and save triggers.

    At most one run is in flight per orchestrator. Triggers arriving while a
    run is active are dropped without touching the presenter.
    """

    def __init__(
        self,
        manager: DaemonManager,
        presenter: Presenter,
        *,
        workspace_root: Path | None,
        client: DaemonClient | None = None,
        diff_collector: DiffCollector | None = None,
        notifier: Notifier | None = None,
    ):
        self.manager = manager
        self.presenter = presenter
        self.workspace_root = workspace_root
        self.client = client or DaemonClient(manager.get_socket_path())
        self.collect_diff = diff_collector or collect_diff
        self.notifier = notifier or LoggingNotifier()
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not RunState.IDLE

    @contextlib.contextmanager
    def _claim(self) -> Iterator[None]:
        self._state = RunState.COLLECTING
        try:
            yield
        finally:
            self._state = RunState.IDLE

    async def run(self, trigger: str = Trigger.MANUAL, active_file: str = "") -> None:
        if self.busy:
            logger.debug("Analysis already running, ignoring %s trigger", trigger)
            return
        if self.workspace_root is None:
            self.notifier.error(NO_WORKSPACE_MESSAGE)
            return
        if not self.manager.is_running():
            if not await self.manager.start():
                return
        # Another trigger may have claimed the run while the daemon started.
        if self.busy:
            return

        with self._claim():
            try:
                self.presenter.show()
                self.presenter.set_loading(True)
                await self._analyze(self.workspace_root, trigger, active_file)
            except Exception as exc:
                logger.warning("Analysis run failed: %s", exc)
                self._present(self.presenter.set_error, str(exc))
            finally:
                self._present(self.presenter.set_loading, False)

    @staticmethod
    def _present(call: Callable[..., None], *args: object) -> None:
        # Presenter failures end at the run boundary.
        try:
            call(*args)
        except Exception as exc:
            logger.warning("Presenter failed: %s", exc)

    async def _analyze(self, root: Path, trigger: str, active_file: str) -> None:
        diff = await self.collect_diff(root)
        if not diff.strip():
            self.presenter.set_error(NO_CHANGES_MESSAGE)
            return

        request = AnalysisRequest(
            diff=diff,
            files_touched=parse_files_from_diff(diff),
            active_file=active_file,
            trigger=trigger,
        )
        self._state = RunState.REQUESTING
        logger.info("Requesting analysis of %d file(s) (%s)", len(request.files_touched), trigger)
        response = await self.client.send(ANALYZE_DIFF, request.to_payload())

        if response.type == ANALYSIS_RESULT:
            self.presenter.set_result(response.payload)
        elif response.type == ERROR:
            self.presenter.set_error(error_message(response.payload))
        else:
            self.presenter.set_error(f"callmeout: unexpected response type from daemon: {response.type}")


@dataclass(frozen=True)
class SaveEvent:
    path: str = ""


class SaveDebouncer:
    """
    Turns a stream of save events into debounced save-triggered runs.

    Every event cancels the pending delayed trigger and schedules a new one.
    Once the quiet period passes the run starts and is no longer cancellable
    by later saves.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        manager: DaemonManager,
        quiet_period: float = SAVE_DEBOUNCE_SECONDS,
    ):
        self.orchestrator = orchestrator
        self.manager = manager
        self.quiet_period = quiet_period
        self.events: asyncio.Queue[SaveEvent | None] = asyncio.Queue()
        self._timer: asyncio.Task[None] | None = None
        self._runs: set[asyncio.Task[None]] = set()

    def submit(self, event: SaveEvent) -> None:
        self.events.put_nowait(event)

    def close(self) -> None:
        self.events.put_nowait(None)

    async def run(self) -> None:
        """Consume events until close(), then wait for a started run to finish."""
        try:
            while True:
                event = await self.events.get()
                if event is None:
                    break
                self._reschedule(event)
        finally:
            self._cancel_timer()
        if self._runs:
            await asyncio.gather(*self._runs, return_exceptions=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _reschedule(self, event: SaveEvent) -> None:
        self._cancel_timer()
        self._timer = asyncio.create_task(self._fire_after_quiet(event))

    async def _fire_after_quiet(self, event: SaveEvent) -> None:
        await asyncio.sleep(self.quiet_period)
        self._timer = None
        if not self.manager.is_running():
            logger.debug("Daemon not running, skipping save-triggered analysis")
            return
        task = asyncio.current_task()
        if task is not None:
            self._runs.add(task)
            task.add_done_callback(self._runs.discard)
        await self.orchestrator.run(trigger=Trigger.SAVE, active_file=event.path)
