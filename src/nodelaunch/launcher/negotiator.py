# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/negotiator.py

from __future__ import annotations

import logging
from typing import Callable, Optional

import paramiko

from nodelaunch.utils.cancel import CancelToken
from nodelaunch.utils.retry import RetryError, call_with_retry
from nodelaunch.utils.ssh import SshSession, load_private_key
from nodelaunch.utils.ssh_runner import SSHRunner

from .errors import AuthFailedError
from .interface import CredentialProvider
from .models import BootstrapOutcome, FailureKind, Negotiation, TargetDescriptor


class BootstrapNegotiator:
    """
    Logs in as the configured admin user and, when that user is not the
    privileged account, copies its authorized keys over so the launcher can
    reconnect as the privileged account.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        *,
        auth_attempts: int = 20,
        auth_delay: float = 10.0,
        cancel: Optional[CancelToken] = None,
        logger: Optional[logging.Logger] = None,
        runner_factory: Callable[[SshSession], SSHRunner] | None = None,
    ):
        self.credentials = credentials
        self.auth_attempts = auth_attempts
        self.auth_delay = auth_delay
        self.cancel = cancel or CancelToken()
        self.logger = logger or logging.getLogger("nodelaunch")
        self.runner_factory = runner_factory or (lambda s: SSHRunner(s, logger=self.logger))

    def admin_key(self) -> paramiko.PKey:
        return load_private_key(self.credentials.get_admin_key_material())

    def _authenticate_admin(self, session: SshSession, target: TargetDescriptor) -> bool:
        key = self.admin_key()

        def attempt() -> None:
            self.logger.info("Authenticating as %s", target.admin_user)
            if not session.authenticate(target.admin_user, key):
                raise AuthFailedError(f"public key rejected for {target.admin_user}")

        def on_retry(n: int, exc: Exception) -> None:
            self.logger.debug("Authentication attempt %d/%d: %s", n, self.auth_attempts, exc)
            if n < self.auth_attempts:
                self.logger.info("Authentication failed. Trying again...")

        try:
            call_with_retry(
                attempt,
                retries=self.auth_attempts,
                delay=self.auth_delay,
                retry_on=(AuthFailedError, paramiko.SSHException),
                on_retry=on_retry,
                sleep=self.cancel.sleep,
            )
        except RetryError:
            return False
        return True

    def authenticate_privileged(self, session: SshSession, target: TargetDescriptor) -> bool:
        """
        Single login as the privileged user after a RECONNECT. sshd is known to
        be up by then, so there is no retry.
        """
        self.logger.info("Authenticating as %s", target.privileged_user)
        try:
            return session.authenticate(target.privileged_user, self.admin_key())
        except paramiko.SSHException as exc:
            self.logger.debug("Authentication as %s raised %s", target.privileged_user, exc)
            return False

    def escalation_command(self, target: TargetDescriptor) -> str:
        return f"{target.root_command_prefix}cp ~/.ssh/authorized_keys {target.privileged_home}/.ssh/"

    def negotiate(self, session: SshSession, target: TargetDescriptor) -> Negotiation:
        """
        The session is closed here unless the outcome is SAME_USER, in which
        case the caller takes it over.
        """
        keep_session = False
        try:
            if not self._authenticate_admin(session, target):
                self.logger.info("Authentication failed")
                return Negotiation.failed(
                    FailureKind.AUTH_FAILED,
                    f"could not authenticate as {target.admin_user} after {self.auth_attempts} attempts",
                )

            if target.is_privileged:
                keep_session = True
                return Negotiation(BootstrapOutcome.SAME_USER)

            # get the privileged user working, so we can upload etc.
            exit_status = self.runner_factory(session).run_pty(self.escalation_command(target))
            if exit_status != 0:
                self.logger.info("Privilege escalation failed: exit code=%d", exit_status)
                return Negotiation.failed(
                    FailureKind.ESCALATION_FAILED,
                    f"copying authorized keys to {target.privileged_user} exited with {exit_status}",
                )
            return Negotiation(BootstrapOutcome.RECONNECT)
        finally:
            if not keep_session:
                session.close()
