"""
Callmeout CLI - drive the local analysis daemon from a terminal or editor hook.

Commands:
    init         - Write a sample callmeout.yml
    explain      - Analyze the current diff once
    watch        - Analyze after saves (file paths read from stdin)
    ping         - Check whether the daemon answers on its socket
    daemon-path  - Print the resolved daemon executable
"""

from __future__ import annotations

import asyncio
import sys
import threading
from pathlib import Path
from typing import TextIO

import click
from dotenv import load_dotenv

# Load .env file from current directory or repo root
load_dotenv()  # Loads from current directory
load_dotenv(Path.cwd() / ".env")  # Explicit current dir
from .config import find_workspace_root
_env_root = find_workspace_root()
if _env_root is not None:
    load_dotenv(_env_root / ".env")

from . import __version__
from .config import CONFIG_FILENAME, CallmeoutConfig
from .daemon import SOCKET_PATH, DaemonClient, DaemonManager
from .diagnostics import daemon_output_sink, setup_logging
from .orchestrator import AnalysisOrchestrator, SaveDebouncer, SaveEvent
from .presenter import ConsoleNotifier, ConsolePresenter
from .protocol import Trigger


SAMPLE_CONFIG = """\
# Callmeout Configuration

daemon:
  # Daemon executable. Empty = <workspace>/daemon/target/release/callmeout-daemon
  # (env: CALLMEOUT_DAEMON_PATH)
  path: ""
  # Model weights handed to the daemon as CACTUS_MODEL_PATH. Empty = unset,
  # the daemon falls back to stub mode. (env: CALLMEOUT_MODEL_PATH)
  model_path: ""
  # RUST_LOG level for the daemon's own diagnostics (~/.callmeout/daemon.log)
  log_level: debug

watch:
  # Quiet period after the last save before analysis runs
  debounce_seconds: 1.5
"""


def _resolve_root(workspace: str | None) -> Path | None:
    if workspace:
        return Path(workspace).expanduser().resolve()
    return find_workspace_root()


def _build_runtime(
    root: Path | None,
    presenter: ConsolePresenter,
) -> tuple[DaemonManager, AnalysisOrchestrator]:
    notifier = ConsoleNotifier()
    manager = DaemonManager(root, notifier=notifier, output_sink=daemon_output_sink)
    orchestrator = AnalysisOrchestrator(
        manager,
        presenter,
        workspace_root=root,
        notifier=notifier,
    )
    return manager, orchestrator


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging on stderr")
def main(verbose: bool):
    """Callmeout - explain your latest change with a local analysis daemon."""
    setup_logging(verbose=verbose)


@main.command()
@click.option("--workspace", default=None, help="Workspace root (default: enclosing git repo)")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(workspace: str | None, force: bool):
    """Write a sample callmeout.yml into the workspace root."""
    root = _resolve_root(workspace) or Path.cwd()
    config_path = root / CONFIG_FILENAME
    if config_path.exists() and not force:
        click.echo(f"⚠️  {config_path} already exists (use --force to overwrite)")
        return
    config_path.write_text(SAMPLE_CONFIG, encoding="utf-8")
    click.echo(f"✅ Created {config_path}")


@main.command()
@click.option("--workspace", default=None, help="Workspace root (default: enclosing git repo)")
@click.option("--active-file", default="", help="File open in the editor, sent as context")
@click.option("--json", "as_json", is_flag=True, help="Output the raw report as JSON")
def explain(workspace: str | None, active_file: str, as_json: bool):
    """Analyze the current diff (or the last commit) once."""
    root = _resolve_root(workspace)
    presenter = ConsolePresenter(as_json=as_json)
    manager, orchestrator = _build_runtime(root, presenter)
    if active_file:
        active_file = str(Path(active_file).expanduser().resolve())

    async def _run() -> None:
        try:
            await orchestrator.run(trigger=Trigger.MANUAL, active_file=active_file)
        finally:
            await manager.shutdown()

    asyncio.run(_run())
    if not presenter.result_shown:
        sys.exit(1)


def _read_lines_in_background(stream: TextIO) -> asyncio.Queue[str | None]:
    """
    Feed lines from a blocking text stream into a queue on the running loop.

    The reader is a daemon thread, so a cancelled watch never waits on a
    blocked readline. None marks EOF.
    """
    loop = asyncio.get_running_loop()
    lines: asyncio.Queue[str | None] = asyncio.Queue()

    def _post(line: str | None) -> bool:
        try:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        except RuntimeError:
            # Loop already closed; nobody is listening any more.
            return False
        return True

    def _reader() -> None:
        for line in stream:
            if not _post(line):
                return
        _post(None)

    threading.Thread(target=_reader, name="callmeout-stdin", daemon=True).start()
    return lines


@main.command()
@click.option("--workspace", default=None, help="Workspace root (default: enclosing git repo)")
@click.option("--json", "as_json", is_flag=True, help="Output raw reports as JSON")
def watch(workspace: str | None, as_json: bool):
    """
    Keep the daemon running and analyze after saves.

    Saved file paths are read from stdin, one per line, e.g. from an editor
    write hook. Analysis runs once saves go quiet. EOF stops the daemon.
    """
    root = _resolve_root(workspace)
    if root is None:
        raise click.ClickException("No workspace found. Run inside a git repository or pass --workspace.")
    config = CallmeoutConfig.load(root)
    presenter = ConsolePresenter(as_json=as_json)
    manager, orchestrator = _build_runtime(root, presenter)
    stdin = click.get_text_stream("stdin")

    async def _run() -> bool:
        if not await manager.start():
            return False
        debouncer = SaveDebouncer(orchestrator, manager, quiet_period=config.watch.debounce_seconds)
        consumer = asyncio.create_task(debouncer.run())
        click.echo(f"👀 Watching saves for {root} (Ctrl-D to stop)", err=True)
        lines = _read_lines_in_background(stdin)
        try:
            while True:
                line = await lines.get()
                if line is None:
                    break
                saved = line.strip()
                if not saved:
                    continue
                path = Path(saved).expanduser()
                if not path.is_absolute():
                    path = root / path
                debouncer.submit(SaveEvent(path=str(path)))
        finally:
            debouncer.close()
            await consumer
            await manager.shutdown()
        return True

    try:
        started = asyncio.run(_run())
    except KeyboardInterrupt:
        click.echo("Stopped.", err=True)
        return
    if not started:
        sys.exit(1)


@main.command()
@click.option("--socket", "socket_path", default=SOCKET_PATH, show_default=True)
def ping(socket_path: str):
    """Check whether a daemon answers on the socket."""
    alive = asyncio.run(DaemonClient(socket_path).ping())
    if alive:
        click.echo(f"✅ Daemon is responding on {socket_path}")
        return
    click.echo(f"❌ No daemon responding on {socket_path}")
    sys.exit(1)


@main.command("daemon-path")
@click.option("--workspace", default=None, help="Workspace root (default: enclosing git repo)")
def daemon_path(workspace: str | None):
    """Print the daemon executable that `explain` would start."""
    manager = DaemonManager(_resolve_root(workspace))
    resolved = manager.get_daemon_path()
    if not resolved:
        raise click.ClickException("No daemon path configured and no workspace found.")
    click.echo(resolved)
    if not Path(resolved).exists():
        click.echo("⚠️  Not built yet. Run `cargo build --release` in the daemon/ directory.", err=True)


if __name__ == "__main__":
    main()
