"""
Configuration management for Callmeout.

Loads callmeout.yml from the workspace root:
- daemon: executable override, model path, daemon log level
- watch: save debounce settings

Environment variables CALLMEOUT_DAEMON_PATH and CALLMEOUT_MODEL_PATH override
the file when set to a non-empty value.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "callmeout.yml"
DAEMON_PATH_ENV = "CALLMEOUT_DAEMON_PATH"
MODEL_PATH_ENV = "CALLMEOUT_MODEL_PATH"


@dataclass
class DaemonConfig:
    """Daemon discovery and launch settings."""

    path: str = ""  # empty = workspace default
    model_path: str = ""  # empty = daemon runs without CACTUS_MODEL_PATH
    log_level: str = "debug"


@dataclass
class WatchConfig:
    """Save-triggered analysis settings."""

    debounce_seconds: float = 1.5


@dataclass
class CallmeoutConfig:
    """Complete Callmeout configuration."""

    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    workspace_root: Path | None = None

    @classmethod
    def load(cls, workspace_root: Path | None) -> "CallmeoutConfig":
        """Load configuration from the workspace root, then apply env overrides."""
        config = cls(workspace_root=workspace_root)

        if workspace_root is not None:
            config_path = workspace_root / CONFIG_FILENAME
            if config_path.exists():
                with open(config_path, encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                if isinstance(data, dict):
                    config = cls._parse(data, workspace_root=workspace_root)

        env_daemon = os.environ.get(DAEMON_PATH_ENV, "").strip()
        if env_daemon:
            config.daemon.path = env_daemon
        env_model = os.environ.get(MODEL_PATH_ENV, "").strip()
        if env_model:
            config.daemon.model_path = env_model

        return config

    @classmethod
    def _parse(cls, data: dict[str, Any], workspace_root: Path) -> "CallmeoutConfig":
        config = cls(workspace_root=workspace_root)

        daemon_data = data.get("daemon") or {}
        config.daemon = DaemonConfig(
            path=str(daemon_data.get("path") or ""),
            model_path=str(daemon_data.get("model_path") or ""),
            log_level=str(daemon_data.get("log_level") or "debug"),
        )

        watch_data = data.get("watch") or {}
        config.watch = WatchConfig(
            debounce_seconds=float(watch_data.get("debounce_seconds", 1.5)),
        )

        return config


def find_workspace_root(start: Path | None = None) -> Path | None:
    """Find the repository root (directory containing .git), or None."""

    current = (start or Path.cwd()).resolve()
    while True:
        if (current / ".git").exists():
            return current
        if current == current.parent:
            return None
        current = current.parent


def get_callmeout_dir() -> Path:
    """Get the per-user ~/.callmeout directory path."""

    return Path.home() / ".callmeout"


def ensure_callmeout_dir() -> Path:
    """Ensure ~/.callmeout exists and return its path."""

    callmeout_dir = get_callmeout_dir()
    callmeout_dir.mkdir(parents=True, exist_ok=True)
    return callmeout_dir
