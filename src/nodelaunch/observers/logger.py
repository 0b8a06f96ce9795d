# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
import logging
from .events import BaseEvent, LaunchSummary, LifecycleEvent


class LoggerObserver:
    """
    Writes events to the run logger. Failures are raised to WARNING so they
    show on the console even when events are otherwise logged at DEBUG.
    """

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG):
        self.logger = logger
        self.level = level

    def _level_for(self, event: BaseEvent) -> int:
        if isinstance(event, LifecycleEvent) and event.status == "FAILURE":
            return logging.WARNING
        if isinstance(event, LaunchSummary) and event.failure:
            return logging.WARNING
        return self.level

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k != "ts" and v not in (None, ""))

        self.logger.log(self._level_for(event), "[EVENT] %s: %s", etype, msg)
