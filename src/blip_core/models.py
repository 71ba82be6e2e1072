"""Shared data models for blip_core."""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

DEFAULT_INTERVAL = 0.5
"""Poll interval in seconds used when none (or a non-positive one) is given."""

DEFAULT_EXTENSIONS = ".go,.mod,.sum,.tpl,.html,.css,.js"

DEFAULT_COMMAND = "go run ."

GRACE_PERIOD = 3.0
"""Seconds a child gets to exit after the graceful signal before it is killed."""

DEFAULT_RESTART_DELAY = 0.1

VCS_DIRS = frozenset({".git", ".hg", ".svn"})

WatchSnapshot = dict[str, int]
"""Relative file path -> modification time in nanoseconds (``st_mtime_ns``)."""


def normalize_extensions(tokens: Iterable[str]) -> frozenset[str]:
    """Trim, drop empties and make sure each extension starts with a dot."""
    out = set()
    for token in tokens:
        token = token.strip()
        if not token:
            continue
        if not token.startswith("."):
            token = "." + token
        out.add(token)
    return frozenset(out)


@dataclass(frozen=True)
class WatchConfiguration:
    """Everything the control loop needs. Immutable once built."""

    root: Path = Path(".")
    """Directory tree to watch."""

    interval: float = DEFAULT_INTERVAL
    """Seconds between snapshots."""

    extensions: frozenset[str] = field(default_factory=lambda: normalize_extensions(DEFAULT_EXTENSIONS.split(",")))
    """Watched extensions, each with a leading dot. Case-sensitive."""

    ignore_vcs: bool = True
    """Skip .git, .hg and .svn (hidden directories are always skipped)."""

    verbose: bool = False

    command: str = DEFAULT_COMMAND
    """Shell command line to run."""

    restart_delay: float = DEFAULT_RESTART_DELAY
    """Pause between stopping the old child and launching the new one."""

    grace_period: float = GRACE_PERIOD

    port: int | None = None
    """If set, wait for this local TCP port to be released before each launch."""

    backend: Literal["poll", "watchdog"] = "poll"

    def __post_init__(self):
        # frozen dataclass, so normalization goes through object.__setattr__
        object.__setattr__(self, "root", Path(self.root))
        if not self.interval or self.interval <= 0:
            object.__setattr__(self, "interval", DEFAULT_INTERVAL)
        if isinstance(self.extensions, str):
            object.__setattr__(self, "extensions", normalize_extensions(self.extensions.split(",")))
        else:
            object.__setattr__(self, "extensions", normalize_extensions(self.extensions))
        if self.grace_period <= 0:
            object.__setattr__(self, "grace_period", GRACE_PERIOD)
        if self.restart_delay < 0:
            object.__setattr__(self, "restart_delay", 0.0)
        if self.backend not in ("poll", "watchdog"):
            raise ValueError(f"Unknown detector backend: {self.backend!r} (expected 'poll' or 'watchdog')")


@dataclass
class ChildProcessHandle:
    """The one child a supervisor owns. Never handed out to callers."""

    pid: int
    """Process id of the shell running the command."""

    pgid: int | None
    """Process group id, None where groups are unsupported."""

    process: asyncio.subprocess.Process = field(repr=False)
    """The ``asyncio.subprocess.Process`` behind this handle."""

    alive: bool = True
