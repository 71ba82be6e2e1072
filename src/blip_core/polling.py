"""Timestamp-polling change detector (the default backend)."""

import asyncio
import contextlib
import logging

from blip_core.models import WatchConfiguration, WatchSnapshot
from blip_core.snapshot import diff, scan
from blip_core.watchers import ChangeDetector, RestartSignal

logger = logging.getLogger(__name__)


class PollingDetector(ChangeDetector):
    """Re-scans the watch root every ``config.interval`` seconds.

    Each scan runs in a worker thread so a slow tree walk never stalls the
    event loop.
    """

    def __init__(self, config: WatchConfiguration, signal: RestartSignal | None = None):
        """Initialize detector.

        Args:
            config: Watch configuration (root, interval, extensions, ignore_vcs)
            signal: Restart slot to post into (a fresh one if omitted)
        """
        self.config = config
        self.signal = signal or RestartSignal()
        self._baseline: WatchSnapshot | None = None
        self._task: asyncio.Task | None = None

    def _scan(self) -> WatchSnapshot:
        return scan(self.config.root, self.config.extensions, self.config.ignore_vcs)

    async def start(self) -> None:
        """Take the baseline snapshot and start the poll task.

        Raises:
            OSError: if the watch root cannot be read.
        """
        if self._task is not None:
            return
        self._baseline = await asyncio.to_thread(self._scan)
        logger.info(f"Watching {self.config.root} ({len(self._baseline)} files, every {self.config.interval}s)")
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the poll task."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def poll_once(self) -> bool:
        """Scan once and compare against the baseline.

        On a difference the new snapshot becomes the baseline and a restart
        signal is posted (coalesced).

        Returns:
            True if a change was detected
        """
        try:
            current = await asyncio.to_thread(self._scan)
        except OSError as e:
            # Keep the old baseline; the root may come back.
            logger.debug(f"Scan of {self.config.root} failed: {e}")
            return False

        if self._baseline is not None and not diff(self._baseline, current):
            return False

        self._baseline = current
        if self.signal.notify():
            logger.debug("Change detected, signaling restart")
        else:
            logger.debug("Change detected, restart already pending")
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.config.interval)
            await self.poll_once()
