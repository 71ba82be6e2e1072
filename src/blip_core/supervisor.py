"""Lifecycle management for the single child process."""

import asyncio
import logging
import os
import signal
import subprocess

from blip_core.models import GRACE_PERIOD, ChildProcessHandle
from blip_core.notifier import BlipNotifier, NoOpNotifier

logger = logging.getLogger(__name__)

_POSIX = os.name == "posix"

GRACEFUL_SIGNAL = signal.SIGTERM
"""Sent to the child's process group first on ``stop``."""

SIGNAL_KILL_DELAY = 0.5
"""Seconds between forwarding an external signal and the forced kill."""

KILL_REAP_TIMEOUT = 1.0
"""How long to wait for the child to be reaped after a forced kill."""

PORT_RELEASE_TIMEOUT = 5.0


class LaunchError(RuntimeError):
    """The command could not be started."""


async def wait_for_port_release(port: int, timeout: float = PORT_RELEASE_TIMEOUT) -> bool:
    """Wait until nothing accepts connections on ``localhost:port``.

    Returns:
        True if the port was free before the timeout
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection("127.0.0.1", port), 0.1)
        except (OSError, asyncio.TimeoutError):
            return True
        writer.close()
        if loop.time() >= deadline:
            logger.warning(f"Port {port} might still be in use")
            return False
        await asyncio.sleep(0.1)


def _spawn_kwargs() -> dict:
    if _POSIX:
        return {"start_new_session": True}
    return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)}


class ProcessSupervisor:
    """Owns at most one child process started from a shell command line.

    ``start`` while a child is live is a no-op that returns False. ``stop``
    and ``signal`` are idempotent. Every read or write of the handle, including
    the background exit waiter, happens under one ``asyncio.Lock``.

    Usage:
        supervisor = ProcessSupervisor("python -m http.server")
        await supervisor.start()
        ...
        await supervisor.stop()
    """

    def __init__(
        self,
        command: str,
        grace_period: float = GRACE_PERIOD,
        port: int | None = None,
        notifier: BlipNotifier | None = None,
    ):
        """Initialize supervisor.

        Args:
            command: Shell command line to run
            grace_period: Seconds between the graceful signal and the forced kill
            port: Optional TCP port to wait on before each launch
            notifier: Lifecycle notices (defaults to NoOpNotifier - silent)
        """
        self.command = command
        self.grace_period = grace_period
        self.port = port
        self.notifier = notifier or NoOpNotifier()
        self._lock = asyncio.Lock()
        self._handle: ChildProcessHandle | None = None
        self._waiters: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        """Whether a live child is currently owned."""
        return self._handle is not None

    @property
    def pid(self) -> int | None:
        return self._handle.pid if self._handle else None

    async def start(self) -> bool:
        """Launch the command unless a child is already running.

        Returns:
            True if a new child was launched, False if one was already live

        Raises:
            LaunchError: if the shell could not be spawned
        """
        async with self._lock:
            if self._handle is not None:
                logger.debug(f"Child {self._handle.pid} already running, not starting another")
                return False

            if self.port is not None:
                await wait_for_port_release(self.port)

            try:
                process = await asyncio.create_subprocess_shell(self.command, **_spawn_kwargs())
            except OSError as e:
                raise LaunchError(f"Failed to start {self.command!r}: {e}") from e

            pgid = None
            if _POSIX:
                try:
                    pgid = os.getpgid(process.pid)
                except OSError:
                    pass

            handle = ChildProcessHandle(pid=process.pid, pgid=pgid, process=process)
            self._handle = handle
            self.notifier.child_started(handle.pid, self.command)
            task = asyncio.create_task(self._wait_exit(handle))
            self._waiters.add(task)
            task.add_done_callback(self._waiters.discard)
            return True

    async def _wait_exit(self, handle: ChildProcessHandle) -> None:
        returncode = await handle.process.wait()
        async with self._lock:
            # stop() or a newer start() may have replaced the handle already
            if self._handle is not handle:
                return
            self._handle = None
            handle.alive = False
        self.notifier.child_exited(handle.pid, returncode)

    async def stop(self) -> None:
        """Stop the child: graceful signal, wait up to the grace period, kill.

        No-op if nothing is running. Returns once the forced kill has been
        issued; the handle is cleared even if this is cancelled midway.
        """
        async with self._lock:
            handle = self._handle
            if handle is None:
                return
            self.notifier.child_stopping(handle.pid)
            try:
                exited = False
                if _POSIX:
                    self._send(handle, GRACEFUL_SIGNAL)
                    exited = await self._wait(handle, self.grace_period)
                if not exited:
                    self.notifier.info(f"Forcing termination of pid {handle.pid}")
                # unconditional: leftover members of the group die too
                self._kill(handle)
                if not exited:
                    await self._wait(handle, KILL_REAP_TIMEOUT)
            except asyncio.CancelledError:
                self._kill(handle)
                raise
            finally:
                handle.alive = False
                self._handle = None

    async def signal(self, sig: int) -> None:
        """Forward ``sig`` to the child, then kill it after a short delay.

        Used when blip itself is being terminated. No-op if nothing is running.
        """
        async with self._lock:
            handle = self._handle
            if handle is None:
                return
            try:
                self._send(handle, sig)
                await asyncio.sleep(SIGNAL_KILL_DELAY)
                self._kill(handle)
                await self._wait(handle, KILL_REAP_TIMEOUT)
            except asyncio.CancelledError:
                self._kill(handle)
                raise
            finally:
                handle.alive = False
                self._handle = None

    async def _wait(self, handle: ChildProcessHandle, timeout: float) -> bool:
        try:
            await asyncio.wait_for(handle.process.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def _send(self, handle: ChildProcessHandle, sig: int) -> None:
        """Best-effort: signal the group, fall back to the process."""
        if handle.pgid is not None:
            try:
                os.killpg(handle.pgid, sig)
                return
            except OSError as e:
                logger.debug(f"Signal {sig} to group {handle.pgid} failed: {e}")
        try:
            handle.process.send_signal(sig)
        except (OSError, ValueError) as e:
            logger.debug(f"Signal {sig} to pid {handle.pid} failed: {e}")

    def _kill(self, handle: ChildProcessHandle) -> None:
        """Best-effort forced kill of the group and then the process."""
        if handle.pgid is not None:
            try:
                os.killpg(handle.pgid, signal.SIGKILL)
            except OSError as e:
                logger.debug(f"Kill of group {handle.pgid} failed: {e}")
        try:
            handle.process.kill()
        except OSError as e:
            logger.debug(f"Kill of pid {handle.pid} failed: {e}")
