"""Abstract detector protocol and the coalesced restart signal."""

import asyncio
from typing import Protocol


class RestartSignal:
    """Buffered notification slot of capacity one.

    ``notify`` while a signal is still pending is dropped, not queued: the
    consumer only cares whether something changed, not how often.
    """

    def __init__(self):
        self._queue: asyncio.Queue[None] = asyncio.Queue(maxsize=1)

    def notify(self) -> bool:
        """Post a signal. Returns False if one was already pending."""
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            return False
        return True

    @property
    def pending(self) -> bool:
        return self._queue.full()

    async def wait(self) -> None:
        """Block until a signal is pending, then consume it."""
        await self._queue.get()


class ChangeDetector(Protocol):
    """Protocol for change detection backends."""

    signal: RestartSignal
    """Where restart notifications are posted."""

    async def start(self) -> None:
        """Take the baseline snapshot and begin watching.

        Raises if the watch root cannot be read.
        """
        ...

    async def stop(self) -> None:
        """Stop watching."""
        ...
