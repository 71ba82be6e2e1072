"""Directory snapshots and snapshot comparison."""

import logging
import os
import stat
from collections.abc import Iterable
from pathlib import Path

from blip_core.models import VCS_DIRS, WatchSnapshot, normalize_extensions

logger = logging.getLogger(__name__)


def parse_extensions(csv: str) -> frozenset[str]:
    """Parse a comma-separated extension list.

    Args:
        csv: e.g. ``".go, js ,,.CSS"``

    Returns:
        Normalized set, e.g. ``{".go", ".js", ".CSS"}``
    """
    return normalize_extensions(csv.split(","))


def is_ignored_dir(name: str, ignore_vcs: bool) -> bool:
    """Directories that are never descended into."""
    if ignore_vcs and name in VCS_DIRS:
        return True
    return name.startswith(".")


def scan(root: str | Path, extensions: Iterable[str], ignore_vcs: bool = True) -> WatchSnapshot:
    """Walk ``root`` and record the mtime of every watched regular file.

    Hidden directories are never descended into. Entries that vanish or
    cannot be read mid-walk are skipped.

    Raises:
        FileNotFoundError, NotADirectoryError, PermissionError: if ``root``
            itself cannot be listed.
    """
    root = os.fspath(root)
    exts = frozenset(extensions)

    # Fail loudly only for the root, everything below it is best-effort.
    with os.scandir(root):
        pass

    snapshot: WatchSnapshot = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not is_ignored_dir(d, ignore_vcs)]
        for name in filenames:
            if os.path.splitext(name)[1] not in exts:
                continue
            path = os.path.join(dirpath, name)
            try:
                st = os.stat(path)
            except OSError:
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            rel = Path(os.path.relpath(path, root)).as_posix()
            snapshot[rel] = st.st_mtime_ns
    return snapshot


def diff(old: WatchSnapshot, new: WatchSnapshot) -> bool:
    """Return True if a file was added, removed or had its mtime change."""
    if len(old) != len(new):
        return True
    for path, mtime in new.items():
        if path not in old or old[path] != mtime:
            return True
    # Same size and every new path is in old, so no path can be missing from new.
    return False
