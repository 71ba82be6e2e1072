"""Control loop tying the change detector to the process supervisor."""

import asyncio
import contextlib
import logging
import signal
from typing import Callable

from blip_core.models import WatchConfiguration
from blip_core.notifier import BlipNotifier, NoOpNotifier
from blip_core.polling import PollingDetector
from blip_core.supervisor import LaunchError, ProcessSupervisor
from blip_core.watchers import ChangeDetector

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def make_detector(config: WatchConfiguration) -> ChangeDetector:
    """Build the detector selected by ``config.backend``."""
    if config.backend == "watchdog":
        from blip_core.file_watcher import WatchdogDetector

        return WatchdogDetector(config)
    return PollingDetector(config)


class BlipController:
    """Runs the command, restarts it on changes, stops it on termination.

    The only orchestration logic: the detector and the supervisor know
    nothing about each other.

    Usage:
        controller = BlipController(config, notifier=LoggingNotifier())
        status = asyncio.run(controller.run())
    """

    def __init__(
        self,
        config: WatchConfiguration,
        notifier: BlipNotifier | None = None,
        detector: ChangeDetector | None = None,
        supervisor: ProcessSupervisor | None = None,
    ):
        """Initialize controller.

        Args:
            config: Watch configuration
            notifier: Lifecycle notices (defaults to NoOpNotifier - silent)
            detector: Change detector (built from config.backend if omitted)
            supervisor: Process supervisor (built from config if omitted)
        """
        self.config = config
        self.notifier = notifier or NoOpNotifier()
        self.detector = detector or make_detector(config)
        self.supervisor = supervisor or ProcessSupervisor(
            config.command,
            grace_period=config.grace_period,
            port=config.port,
            notifier=self.notifier,
        )
        self._terminate = asyncio.Event()
        self._received: int | None = None
        self.restarts = 0

        # Outbound events (host wires these)
        self.on_child_started: Callable[[int], None] | None = None
        self.on_restart: Callable[[], None] | None = None
        self.on_shutdown: Callable[[], None] | None = None

    def request_stop(self, sig: int | None = None) -> None:
        """Ask the loop to shut down. Must be called on the loop's thread.

        Args:
            sig: Signal to forward to the child, or None for a plain stop
        """
        if sig is not None:
            self.notifier.info(f"Received signal: {signal.Signals(sig).name}")
            self._received = sig
        self._terminate.set()

    async def run(self) -> int:
        """Scan, launch, then watch until a termination request arrives.

        The child is stopped on every way out of here, cancellation included.

        Returns:
            0 on a clean shutdown, 1 if the initial scan or launch failed
        """
        loop = asyncio.get_running_loop()
        # Installed first so a signal during startup (port wait, slow scan) is not lost.
        restore = self._install_signal_handlers(loop)
        try:
            try:
                await self.detector.start()
            except OSError as e:
                self.notifier.error(f"Watcher start error: {e}")
                return 1

            try:
                if not self._terminate.is_set():
                    try:
                        await self.supervisor.start()
                    except LaunchError as e:
                        self.notifier.error(str(e))
                        return 1
                    self._emit(self.on_child_started, self.supervisor.pid)

                # A request may already have arrived while starting up.
                if not self._terminate.is_set():
                    await self._watch()
            finally:
                await self.detector.stop()
                await self._shutdown_child()
        finally:
            restore()

        self._emit(self.on_shutdown)
        return 0

    async def _shutdown_child(self) -> None:
        if self._received is not None:
            await self.supervisor.signal(self._received)
        else:
            await self.supervisor.stop()

    async def _watch(self) -> None:
        stop_wait = asyncio.ensure_future(self._terminate.wait())
        change = cycle = None
        try:
            while True:
                change = asyncio.ensure_future(self.detector.signal.wait())
                done, _ = await asyncio.wait({change, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
                if stop_wait in done:
                    return

                cycle = asyncio.ensure_future(self._restart())
                done, _ = await asyncio.wait({cycle, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
                if cycle in done:
                    cycle.result()
                    continue
                # Termination mid-restart: abandon the cycle, the final stop cleans up.
                return
        finally:
            stop_wait.cancel()
            if change is not None:
                change.cancel()
            if cycle is not None and not cycle.done():
                cycle.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await cycle

    async def _restart(self) -> None:
        self.restarts += 1
        self.notifier.restarting(self.restarts)
        await self.supervisor.stop()
        if self.config.restart_delay:
            await asyncio.sleep(self.config.restart_delay)
        try:
            await self.supervisor.start()
        except LaunchError as e:
            # Keep watching, the next change may fix it.
            self.notifier.error(f"Failed to restart command: {e}")
            return
        self._emit(self.on_restart)
        self._emit(self.on_child_started, self.supervisor.pid)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> Callable[[], None]:
        """Route SIGINT/SIGTERM into request_stop. Returns an undo function."""
        added: list[int] = []
        previous: dict[int, object] = {}

        for sig in TERMINATION_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_stop, sig)
                added.append(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # No loop signal support (e.g. Windows): plain handler hopping onto the loop
                try:
                    previous[sig] = signal.signal(
                        sig, lambda s, _frame: loop.call_soon_threadsafe(self.request_stop, s)
                    )
                except ValueError as e:
                    logger.debug(f"Cannot install handler for {sig}: {e}")

        def restore() -> None:
            for sig in added:
                loop.remove_signal_handler(sig)
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        return restore

    def _emit(self, callback: Callable | None, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Error in controller callback: {e}")
