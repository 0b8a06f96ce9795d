# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/connector.py

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import paramiko

from nodelaunch.utils.cancel import CancelToken
from nodelaunch.utils.ssh import SshSession, open_session

from .errors import UnreachableError
from .host_keys import AcceptAnyHostKey, HostKeyVerifier
from .interface import InstanceDirectory
from .models import UNASSIGNED_ADDRESS, TargetDescriptor

Opener = Callable[[str, int], SshSession]


class SshConnector:
    """
    Opens an SSH transport to an instance, waiting for as long as it takes
    for the instance to get an address and for sshd to come up.
    """

    def __init__(
        self,
        directory: InstanceDirectory,
        *,
        verifier: Optional[HostKeyVerifier] = None,
        backoff: float = 5.0,
        connect_timeout: float = 30.0,
        max_wait: Optional[float] = None,
        cancel: Optional[CancelToken] = None,
        logger: Optional[logging.Logger] = None,
        opener: Optional[Opener] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.directory = directory
        self.verifier = verifier or AcceptAnyHostKey()
        self.backoff = backoff
        self.connect_timeout = connect_timeout
        self.max_wait = max_wait        # None: retry forever
        self.cancel = cancel or CancelToken()
        self.logger = logger or logging.getLogger("nodelaunch")
        self.opener = opener or self._open
        self.clock = clock

    def _open(self, host: str, port: int) -> SshSession:
        return open_session(host, port, verifier=self.verifier, timeout=self.connect_timeout)

    def _try_connect(self, target: TargetDescriptor) -> Optional[SshSession]:
        host = self.directory.refresh_private_address(target.instance_id)
        if host == UNASSIGNED_ADDRESS:
            self.logger.info(
                "Invalid host %s, your host is most likely waiting for an ip address.", host
            )
            return None

        port = self.directory.get_ssh_port(target.instance_id)
        self.logger.info("Connecting to %s on port %d.", host, port)
        try:
            return self.opener(host, port)
        except (OSError, EOFError, paramiko.SSHException) as exc:
            self.logger.debug("SSH connect to %s:%d failed: %s: %s", host, port, type(exc).__name__, exc)
            return None

    def connect(self, target: TargetDescriptor) -> SshSession:
        started = self.clock()
        while True:
            self.cancel.raise_if_cancelled()
            session = self._try_connect(target)
            if session is not None:
                self.logger.info("Connected via SSH.")
                return session

            if self.max_wait is not None and self.clock() - started >= self.max_wait:
                raise UnreachableError(
                    f"{target.instance_id} did not accept SSH within {self.max_wait:g}s"
                )
            # keep retrying until SSH comes up
            self.logger.info("Waiting for SSH to come up. Sleeping %g.", self.backoff)
            self.cancel.sleep(self.backoff)
