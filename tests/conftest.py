"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

posix_only = pytest.mark.skipif(os.name != "posix", reason="needs sh and process groups")


class RecordingNotifier:
    """Notifier that keeps every event for assertions."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []
        self.started: list[tuple[int, str]] = []
        self.stopping: list[int] = []
        self.exited: list[tuple[int, int]] = []
        self.restarts: list[int] = []

    def child_started(self, pid: int, command: str) -> None:
        self.started.append((pid, command))

    def child_stopping(self, pid: int) -> None:
        self.stopping.append(pid)

    def child_exited(self, pid: int, returncode: int) -> None:
        self.exited.append((pid, returncode))

    def restarting(self, count: int) -> None:
        self.restarts.append(count)

    def info(self, msg: str) -> None:
        self.messages.append(("info", msg))

    def error(self, msg: str) -> None:
        self.messages.append(("error", msg))

    def texts(self, level: str | None = None) -> list[str]:
        return [m for lvl, m in self.messages if level is None or lvl == level]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def go_tree(tmp_path):
    """A small project tree with a VCS directory and a hidden directory."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.go").write_text("package main\n")
    (tmp_path / "go.mod").write_text("module example\n")
    (tmp_path / "README.md").write_text("# readme\n")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "config").write_text("[core]\n")
    (tmp_path / ".git" / "hook.go").write_text("package hook\n")
    (tmp_path / ".cache").mkdir()
    (tmp_path / ".cache" / "gen.go").write_text("package gen\n")
    return tmp_path


def bump_mtime(path: Path, seconds: float = 10.0) -> None:
    """Move a file's mtime forward so the change is visible at any granularity."""
    st = path.stat()
    os.utime(path, (st.st_atime + seconds, st.st_mtime + seconds))


def child_gone(pid: int) -> bool:
    """True once ``pid`` no longer exists or is only a zombie waiting to be reaped."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    except PermissionError:
        return False
    try:
        with open(f"/proc/{pid}/stat") as f:
            return f.read().split()[2] == "Z"
    except OSError:
        return False
