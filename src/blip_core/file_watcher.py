"""Event-based change detector using watchdog.

Optional alternative to :class:`blip_core.polling.PollingDetector`. Applies
the same extension and hidden-directory rules, and posts into the same
coalesced :class:`RestartSignal`.
"""

import asyncio
import logging
import os
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from blip_core.models import WatchConfiguration
from blip_core.snapshot import is_ignored_dir, scan
from blip_core.watchers import ChangeDetector, RestartSignal

logger = logging.getLogger(__name__)

_IGNORED_EVENTS = {"opened", "closed", "closed_no_write"}


class _FilteredHandler(FileSystemEventHandler):
    """Forwards relevant file events to the event loop."""

    def __init__(
        self,
        root: Path,
        extensions: frozenset[str],
        ignore_vcs: bool,
        loop: asyncio.AbstractEventLoop,
        signal: RestartSignal,
    ):
        self.root = root
        self.extensions = extensions
        self.ignore_vcs = ignore_vcs
        self.loop = loop
        self.signal = signal

    def _matches_filters(self, path: str) -> bool:
        """Check extension and that no parent directory is hidden.

        Args:
            path: Absolute or root-relative path reported by watchdog

        Returns:
            True if a change to this path should trigger a restart
        """
        if os.path.splitext(path)[1] not in self.extensions:
            return False
        try:
            rel = Path(path).resolve().relative_to(self.root)
        except ValueError:
            return False
        return not any(is_ignored_dir(part, self.ignore_vcs) for part in rel.parts[:-1])

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle all file system events."""
        if event.is_directory or event.event_type in _IGNORED_EVENTS:
            return

        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(dest)

        if any(self._matches_filters(os.fsdecode(p)) for p in paths):
            logger.debug(f"File {event.event_type}: {event.src_path}")
            self.loop.call_soon_threadsafe(self.signal.notify)


class WatchdogDetector(ChangeDetector):
    """Change detector driven by OS file notifications."""

    def __init__(self, config: WatchConfiguration, signal: RestartSignal | None = None):
        """Initialize detector.

        Args:
            config: Watch configuration
            signal: Restart slot to post into (a fresh one if omitted)
        """
        self.config = config
        self.signal = signal or RestartSignal()
        self.observer: Observer | None = None

    async def start(self) -> None:
        """Check the root is readable, then start the observer thread."""
        if self.observer is not None:
            return
        files = await asyncio.to_thread(scan, self.config.root, self.config.extensions, self.config.ignore_vcs)

        root = self.config.root.resolve()
        handler = _FilteredHandler(
            root=root,
            extensions=self.config.extensions,
            ignore_vcs=self.config.ignore_vcs,
            loop=asyncio.get_running_loop(),
            signal=self.signal,
        )
        self.observer = Observer()
        self.observer.schedule(handler, str(root), recursive=True)
        self.observer.start()
        logger.info(f"Watching {root} ({len(files)} files, watchdog events)")

    async def stop(self) -> None:
        """Stop the observer thread."""
        if self.observer is None:
            return
        observer, self.observer = self.observer, None
        if observer.is_alive():
            observer.stop()
            await asyncio.to_thread(observer.join, 2.0)
            logger.info("Stopped file watcher")
