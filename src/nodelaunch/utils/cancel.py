# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/utils/cancel.py

from __future__ import annotations

import threading

from nodelaunch.launcher.errors import LaunchCancelled


class CancelToken:
    """
    Cancellation signal shared between a launch and whoever may abort it.

    Only sleeps between attempts are interruptible; a command that is
    already running on the remote side is never cut short.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise LaunchCancelled("launch cancelled")

    def sleep(self, seconds: float) -> None:
        """Wait *seconds*, raising LaunchCancelled as soon as cancel() is called."""
        self.raise_if_cancelled()
        if self._event.wait(seconds):
            raise LaunchCancelled("launch cancelled")
