# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/utils/ssh_runner.py

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

import paramiko

from nodelaunch.launcher.models import EXIT_STATUS_UNKNOWN
from nodelaunch.utils.ssh import SshSession


def wait_exit_status(
    channel: paramiko.Channel,
    *,
    attempts: int = 10,
    interval: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Return the channel's exit status, or EXIT_STATUS_UNKNOWN if none arrives
    within attempts * interval seconds.

    The status message often trails the end of the output, so it is polled
    rather than read once. One last check is made when the window closes.
    """
    for attempt in range(attempts + 1):
        if channel.exit_status_ready():
            return channel.recv_exit_status()
        if attempt < attempts:
            sleep(interval)
    return EXIT_STATUS_UNKNOWN


class SSHRunner:
    """
    Runs one command per channel on an authenticated session and forwards
    its output to the progress logger.
    """

    def __init__(
        self,
        session: SshSession,
        *,
        logger: Optional[logging.Logger] = None,
        exit_status_attempts: int = 10,
        exit_status_interval: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self.logger = logger or logging.getLogger("nodelaunch")
        self.exit_status_attempts = exit_status_attempts
        self.exit_status_interval = exit_status_interval
        self.sleep = sleep

    def _forward(self, stream: Iterable) -> None:
        for line in stream:
            if isinstance(line, bytes):
                line = line.decode("utf-8", errors="replace")
            self.logger.info("%s", line.rstrip("\r\n"))

    def _wait(self, channel: paramiko.Channel) -> int:
        return wait_exit_status(
            channel,
            attempts=self.exit_status_attempts,
            interval=self.exit_status_interval,
            sleep=self.sleep,
        )

    def run(self, cmd: str) -> int:
        """
        Execute *cmd*, forwarding its output as it arrives. Returns the exit status.

        stderr is merged into stdout on the channel, so a chatty stderr can never
        fill its window while stdout is still being read.
        """
        channel = self.session.open_channel()
        try:
            self.logger.info("Running cmd: %s", cmd)
            channel.set_combine_stderr(True)
            channel.exec_command(cmd)
            channel.shutdown_write()    # nothing to write here
            self._forward(channel.makefile("rb"))
            return self._wait(channel)
        finally:
            channel.close()

    def run_pty(self, cmd: str) -> int:
        """
        Execute *cmd* on a dumb pseudo-terminal so the remote side interleaves
        stderr into stdout. stderr is never read.
        """
        channel = self.session.open_channel()
        try:
            channel.get_pty(term="dumb")
            channel.exec_command(cmd)
            channel.shutdown_write()
            self._forward(channel.makefile("rb"))
            return self._wait(channel)
        finally:
            channel.close()

    def put_bytes(self, data: bytes, remote_path: str, *, mode: int = 0o644) -> None:
        self.session.put_bytes(data, remote_path, mode=mode)
