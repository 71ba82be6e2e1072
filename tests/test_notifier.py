"""Tests for the logging notifier's lifecycle messages."""

import logging

from blip_core.notifier import LoggingNotifier, NoOpNotifier


class TestLoggingNotifier:
    """Lifecycle events carry the pid or restart count."""

    def test_lifecycle_messages(self, caplog):
        notifier = LoggingNotifier()
        with caplog.at_level(logging.INFO, logger="blip"):
            notifier.child_started(42, "go run .")
            notifier.restarting(3)
            notifier.child_stopping(42)
            notifier.child_exited(42, 0)

        assert caplog.messages == [
            "Started pid 42: go run .",
            "Change detected, restart #3",
            "Stopping pid 42",
            "Child 42 exited",
        ]

    def test_failed_exit_is_a_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="blip"):
            LoggingNotifier().child_exited(7, 2)
        assert caplog.records[-1].levelno == logging.WARNING
        assert caplog.records[-1].getMessage() == "Child 7 exited with status 2"


def test_noop_notifier_accepts_everything():
    notifier = NoOpNotifier()
    notifier.child_started(1, "true")
    notifier.child_stopping(1)
    notifier.child_exited(1, 0)
    notifier.restarting(1)
    notifier.info("x")
    notifier.error("y")
