# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/channel.py

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from .interface import CloseListener

log = logging.getLogger("nodelaunch")


class ChannelClosedError(RuntimeError):
    pass


class StreamChannel:
    """
    Bidirectional byte channel over a pair of read/write callables.

    Incoming data is read on a daemon thread and handed to *receiver*. The
    channel closes on local close(), on a read or write error, or when a read
    returns no data (the remote side hung up). Close listeners run once, on
    whichever thread closed the channel.
    """

    def __init__(
        self,
        read: Callable[[int], bytes],
        write: Callable[[bytes], None],
        *,
        receiver: Optional[Callable[[bytes], None]] = None,
        chunk_size: int = 32768,
        name: str = "agent-channel",
    ):
        self._read = read
        self._write = write
        self.receiver = receiver
        self.chunk_size = chunk_size
        self.name = name

        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._listeners: List[CloseListener] = []
        self._closed = False
        self._cause: Optional[BaseException] = None
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cause(self) -> Optional[BaseException]:
        return self._cause

    def add_close_listener(self, listener: CloseListener) -> None:
        with self._lock:
            if not self._closed:
                self._listeners.append(listener)
                return
        listener(self._cause)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._read_loop, name=self.name, daemon=True)
        self._thread.start()

    def _read_loop(self) -> None:
        try:
            while not self._closed:
                chunk = self._read(self.chunk_size)
                if not chunk:
                    break
                if self.receiver is not None:
                    self.receiver(chunk)
        except Exception as exc:
            self._terminate(exc)
            return
        self._terminate(None)

    def send(self, data: bytes) -> None:
        if self._closed:
            raise ChannelClosedError(f"{self.name} is closed")
        try:
            with self._write_lock:
                self._write(data)
        except Exception as exc:
            self._terminate(exc)
            raise ChannelClosedError(f"{self.name} write failed: {exc}") from exc

    def close(self, cause: Optional[BaseException] = None) -> None:
        self._terminate(cause)

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def _terminate(self, cause: Optional[BaseException]) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cause = cause
            listeners, self._listeners = self._listeners, []

        for listener in listeners:
            try:
                listener(cause)
            except Exception:
                log.exception("%s: close listener failed", self.name)
        self._done.set()
