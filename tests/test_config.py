"""Tests for WatchConfiguration normalization and TOML config loading."""

import logging
from pathlib import Path

import pytest

from blip_core.config import load_watch_config, read_config_file
from blip_core.models import DEFAULT_INTERVAL, GRACE_PERIOD, WatchConfiguration


class TestWatchConfiguration:
    """Defaults and normalization."""

    def test_defaults(self):
        config = WatchConfiguration()
        assert config.root == Path(".")
        assert config.interval == DEFAULT_INTERVAL
        assert config.extensions == {".go", ".mod", ".sum", ".tpl", ".html", ".css", ".js"}
        assert config.ignore_vcs is True
        assert config.verbose is False
        assert config.command == "go run ."
        assert config.grace_period == GRACE_PERIOD
        assert config.backend == "poll"

    @pytest.mark.parametrize("interval", [0, -1, None])
    def test_non_positive_interval_uses_default(self, interval):
        assert WatchConfiguration(interval=interval).interval == DEFAULT_INTERVAL

    def test_extensions_from_string_and_list(self):
        assert WatchConfiguration(extensions="go, .html").extensions == {".go", ".html"}
        assert WatchConfiguration(extensions=["go", " .js", ""]).extensions == {".go", ".js"}

    def test_root_becomes_path(self):
        assert isinstance(WatchConfiguration(root="src").root, Path)

    def test_immutable(self):
        config = WatchConfiguration()
        with pytest.raises(AttributeError):
            config.command = "other"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError, match="backend"):
            WatchConfiguration(backend="inotify")


class TestReadConfigFile:
    """read_config_file."""

    def test_reads_watch_table(self, tmp_path):
        path = tmp_path / "blip.toml"
        path.write_text(
            """
[watch]
root = "src"
interval_ms = 250
extensions = ["go", ".tpl"]
ignore_vcs = false
command = "go run ./cmd/server"
grace_period_ms = 1500
restart_delay_ms = 0
port = 8080
backend = "watchdog"
"""
        )
        values = read_config_file(path)
        assert values["root"] == tmp_path / "src"
        assert values["interval"] == 0.25
        assert values["ignore_vcs"] is False
        assert values["command"] == "go run ./cmd/server"
        assert values["grace_period"] == 1.5
        assert values["restart_delay"] == 0
        assert values["port"] == 8080

        config = WatchConfiguration(**values)
        assert config.extensions == {".go", ".tpl"}
        assert config.backend == "watchdog"

    def test_csv_extensions(self, tmp_path):
        path = tmp_path / "blip.toml"
        path.write_text('[watch]\nextensions = ".py, toml"\n')
        assert WatchConfiguration(**read_config_file(path)).extensions == {".py", ".toml"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_config_file(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "blip.toml"
        path.write_text("[watch\ncommand = ")
        with pytest.raises(ValueError, match="Failed to parse"):
            read_config_file(path)

    def test_bad_value(self, tmp_path):
        path = tmp_path / "blip.toml"
        path.write_text('[watch]\nport = "http"\n')
        with pytest.raises(ValueError, match="port"):
            read_config_file(path)

    @pytest.mark.parametrize("key", ["ignore_vcs", "verbose"])
    def test_string_boolean_rejected(self, tmp_path, key):
        path = tmp_path / "blip.toml"
        path.write_text(f'[watch]\n{key} = "false"\n')
        with pytest.raises(ValueError, match=key):
            read_config_file(path)

    def test_unknown_key_warns(self, tmp_path, caplog):
        path = tmp_path / "blip.toml"
        path.write_text('[watch]\ncolour = "blue"\n')
        with caplog.at_level(logging.WARNING):
            assert read_config_file(path) == {}
        assert "colour" in caplog.text

    def test_empty_file(self, tmp_path):
        path = tmp_path / "blip.toml"
        path.write_text("")
        assert read_config_file(path) == {}


class TestLoadWatchConfig:
    """load_watch_config merges file and overrides."""

    def test_overrides_win_and_none_is_ignored(self, tmp_path):
        path = tmp_path / "blip.toml"
        path.write_text('[watch]\ncommand = "make run"\nverbose = true\n')
        config = load_watch_config(path, {"command": "go run .", "verbose": None})
        assert config.command == "go run ."
        assert config.verbose is True

    def test_picks_up_default_file(self, tmp_path, monkeypatch):
        (tmp_path / "blip.toml").write_text('[watch]\ncommand = "from-file"\n')
        monkeypatch.chdir(tmp_path)
        assert load_watch_config().command == "from-file"

    def test_no_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_watch_config(overrides={"interval": 0.1}) == WatchConfiguration(interval=0.1)
