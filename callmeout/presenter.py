"""
Presenter implementations for analysis runs.

QueuePresenter turns presenter calls into discrete messages for a UI that
consumes them elsewhere. ConsolePresenter renders straight to the terminal
for the CLI.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click
from jinja2 import Environment, FileSystemLoader


def _template_env() -> Environment:
    template_dir = Path(__file__).resolve().parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_report(result: Any) -> str:
    """Render an analysis result as plain text."""
    if not isinstance(result, dict):
        return json.dumps(result, indent=2)
    template = _template_env().get_template("report.txt.j2")
    return template.render(
        risk_level=str(result.get("risk_level") or "unknown"),
        confidence=result.get("confidence"),
        summary=result.get("summary") or [],
        risk_reasons=result.get("risk_reasons") or [],
        impacted_files=result.get("impacted_files") or [],
        impacted_symbols=result.get("impacted_symbols") or [],
        suggested_actions=result.get("suggested_actions") or [],
    ).rstrip() + "\n"


class QueuePresenter:
    """Presenter that posts panel messages onto a bounded queue."""

    def __init__(self, maxsize: int = 100):
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=maxsize)

    def _post(self, message: dict[str, Any]) -> None:
        # Drop the oldest message when the consumer falls behind.
        if self.queue.full():
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        self.queue.put_nowait(message)

    def show(self) -> None:
        self._post({"type": "show"})

    def set_loading(self, loading: bool) -> None:
        self._post({"type": "loading" if loading else "idle"})

    def set_result(self, result: Any) -> None:
        self._post({"type": "result", "result": result})

    def set_error(self, message: str) -> None:
        self._post({"type": "error", "message": message})

    def drain(self) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        while not self.queue.empty():
            messages.append(self.queue.get_nowait())
        return messages


class ConsolePresenter:
    """Presenter for the CLI: progress on stderr, report on stdout."""

    def __init__(self, as_json: bool = False):
        self.as_json = as_json
        self.result_shown = False

    def show(self) -> None:
        pass

    def set_loading(self, loading: bool) -> None:
        if loading:
            click.echo("Analyzing changes...", err=True)

    def set_result(self, result: Any) -> None:
        self.result_shown = True
        if self.as_json:
            click.echo(json.dumps(result, indent=2))
        else:
            click.echo(render_report(result), nl=False)

    def set_error(self, message: str) -> None:
        click.echo(f"Error: {message}", err=True)


class ConsoleNotifier:
    def error(self, message: str) -> None:
        click.echo(f"❌ {message}", err=True)
