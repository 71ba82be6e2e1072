"""Lifecycle notices for the supervised child.

The supervisor and controller report what happens to the child through a
``BlipNotifier``; the host decides how (or whether) to show it.
"""

import logging
from typing import Protocol

logger = logging.getLogger("blip")


class BlipNotifier(Protocol):
    """Receives child lifecycle events and free-form diagnostics."""

    def child_started(self, pid: int, command: str) -> None:
        """A new child was launched."""
        ...

    def child_stopping(self, pid: int) -> None:
        """Shutdown of a live child has begun."""
        ...

    def child_exited(self, pid: int, returncode: int) -> None:
        """The child exited on its own (not through stop)."""
        ...

    def restarting(self, count: int) -> None:
        """A change was detected; ``count`` restarts so far, this one included."""
        ...

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class NoOpNotifier:
    """Silent notifier, the default when embedded."""

    def child_started(self, pid: int, command: str) -> None:
        pass

    def child_stopping(self, pid: int) -> None:
        pass

    def child_exited(self, pid: int, returncode: int) -> None:
        pass

    def restarting(self, count: int) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass


class LoggingNotifier:
    """Writes notices to the ``blip`` logger. Used by the CLI."""

    def child_started(self, pid: int, command: str) -> None:
        logger.info(f"Started pid {pid}: {command}")

    def child_stopping(self, pid: int) -> None:
        logger.info(f"Stopping pid {pid}")

    def child_exited(self, pid: int, returncode: int) -> None:
        if returncode:
            logger.warning(f"Child {pid} exited with status {returncode}")
        else:
            logger.info(f"Child {pid} exited")

    def restarting(self, count: int) -> None:
        logger.info(f"Change detected, restart #{count}")

    def info(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)
