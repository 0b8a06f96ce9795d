# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/handoff.py

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .channel import StreamChannel
from .interface import AgentChannel
from .sequencer import AgentProcess

ChannelBinder = Callable[[AgentProcess], AgentChannel]


def stream_channel_binder(
    receiver: Optional[Callable[[bytes], None]] = None,
    *,
    chunk_size: int = 32768,
) -> ChannelBinder:
    """Binder that wraps the agent's stdio in a StreamChannel."""

    def bind(process: AgentProcess) -> StreamChannel:
        return StreamChannel(process.read, process.write, receiver=receiver, chunk_size=chunk_size)

    return bind


class _Release:
    """Closes the agent's exec channel, then the transport. Runs once."""

    def __init__(self, process: AgentProcess, logger: logging.Logger):
        self.process = process
        self.logger = logger
        self._lock = threading.Lock()
        self._done = False

    def __call__(self, cause: Optional[BaseException]) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True
        if cause is not None:
            self.logger.info("Agent channel closed: %s: %s", type(cause).__name__, cause)
        else:
            self.logger.info("Agent channel closed")
        try:
            self.process.channel.close()
        finally:
            self.process.session.close()


class ChannelHandoff:
    """
    Hands the launched agent's stdio to the caller's channel and ties the SSH
    transport's lifetime to it.

    The release listener is registered before the channel starts, so it is the
    first listener notified: by the time any later listener runs, the exec
    channel and the transport are already closed.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("nodelaunch")

    def bind(self, process: AgentProcess, binder: Optional[ChannelBinder] = None) -> AgentChannel:
        binder = binder or stream_channel_binder()
        channel = binder(process)
        channel.add_close_listener(_Release(process, self.logger))
        channel.start()
        return channel
