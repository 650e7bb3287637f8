from __future__ import annotations

from callmeout.config import CallmeoutConfig, find_workspace_root


def test_config_load_daemon_and_watch_sections(tmp_path, monkeypatch):
    monkeypatch.delenv("CALLMEOUT_DAEMON_PATH", raising=False)
    monkeypatch.delenv("CALLMEOUT_MODEL_PATH", raising=False)
    (tmp_path / "callmeout.yml").write_text(
        """
daemon:
  path: /opt/callmeout/bin/callmeout-daemon
  model_path: ~/weights/functiongemma-270m-it
  log_level: info
watch:
  debounce_seconds: 0.5
        """.strip()
    )

    config = CallmeoutConfig.load(tmp_path)

    assert config.daemon.path == "/opt/callmeout/bin/callmeout-daemon"
    assert config.daemon.model_path == "~/weights/functiongemma-270m-it"
    assert config.daemon.log_level == "info"
    assert config.watch.debounce_seconds == 0.5
    assert config.workspace_root == tmp_path


def test_config_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.delenv("CALLMEOUT_DAEMON_PATH", raising=False)
    monkeypatch.delenv("CALLMEOUT_MODEL_PATH", raising=False)

    config = CallmeoutConfig.load(tmp_path)

    assert config.daemon.path == ""
    assert config.daemon.model_path == ""
    assert config.daemon.log_level == "debug"
    assert config.watch.debounce_seconds == 1.5


def test_config_blank_values_mean_unset(tmp_path, monkeypatch):
    monkeypatch.delenv("CALLMEOUT_DAEMON_PATH", raising=False)
    monkeypatch.delenv("CALLMEOUT_MODEL_PATH", raising=False)
    (tmp_path / "callmeout.yml").write_text('daemon:\n  path: ""\n  model_path:\n')

    config = CallmeoutConfig.load(tmp_path)

    assert config.daemon.path == ""
    assert config.daemon.model_path == ""


def test_env_overrides_file(tmp_path, monkeypatch):
    (tmp_path / "callmeout.yml").write_text("daemon:\n  path: /from/file\n")
    monkeypatch.setenv("CALLMEOUT_DAEMON_PATH", "/from/env")
    monkeypatch.setenv("CALLMEOUT_MODEL_PATH", "/models/env")

    config = CallmeoutConfig.load(tmp_path)

    assert config.daemon.path == "/from/env"
    assert config.daemon.model_path == "/models/env"


def test_empty_env_does_not_override(tmp_path, monkeypatch):
    (tmp_path / "callmeout.yml").write_text("daemon:\n  path: /from/file\n")
    monkeypatch.setenv("CALLMEOUT_DAEMON_PATH", "")

    assert CallmeoutConfig.load(tmp_path).daemon.path == "/from/file"


def test_load_without_workspace_uses_env_only(monkeypatch):
    monkeypatch.setenv("CALLMEOUT_DAEMON_PATH", "/from/env")

    config = CallmeoutConfig.load(None)

    assert config.workspace_root is None
    assert config.daemon.path == "/from/env"


def test_find_workspace_root_walks_up_to_git_dir(tmp_path):
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)

    assert find_workspace_root(nested) == tmp_path.resolve()


def test_find_workspace_root_none_outside_repo(tmp_path):
    # tmp_path lives under the system temp dir, outside any checkout.
    assert find_workspace_root(tmp_path) is None
