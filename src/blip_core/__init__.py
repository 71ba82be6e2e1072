"""blip-core: change detection and child process supervision for blip."""

__version__ = "0.1.0"

from blip_core.config import load_watch_config
from blip_core.models import (
    GRACE_PERIOD,
    ChildProcessHandle,
    WatchConfiguration,
    WatchSnapshot,
)
from blip_core.notifier import BlipNotifier, LoggingNotifier, NoOpNotifier
from blip_core.polling import PollingDetector
from blip_core.snapshot import diff, parse_extensions, scan
from blip_core.supervisor import LaunchError, ProcessSupervisor
from blip_core.watchers import ChangeDetector, RestartSignal

__all__ = [
    "__version__",
    # Models
    "WatchConfiguration",
    "WatchSnapshot",
    "ChildProcessHandle",
    "GRACE_PERIOD",
    # Detection
    "scan",
    "diff",
    "parse_extensions",
    "ChangeDetector",
    "RestartSignal",
    "PollingDetector",
    # Supervision
    "ProcessSupervisor",
    "LaunchError",
    # Notifications
    "BlipNotifier",
    "NoOpNotifier",
    "LoggingNotifier",
    # Config
    "load_watch_config",
]
