# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/unix_launcher.py

from __future__ import annotations

import logging
import uuid
from typing import Optional

from nodelaunch.observers.dispatcher import EventBus
from nodelaunch.observers.events import LaunchSummary, LifecycleEvent, new_ctx
from nodelaunch.utils.ssh import SshSession

from .connector import SshConnector
from .errors import LaunchError
from .handoff import ChannelBinder, ChannelHandoff
from .models import BootstrapOutcome, FailureKind, LaunchResult, TargetDescriptor
from .negotiator import BootstrapNegotiator
from .sequencer import ProvisioningSequencer


class UnixLauncher:
    """
    Bootstraps a Unix node over SSH and hands back a channel to its agent.

        connect -> authenticate as admin -> [escalate -> reconnect as root]
                -> provision (init, runtime, deploy, launch) -> handoff

    launch() never raises for launch failures: every outcome is reported as a
    LaunchResult, and any session still owned on a failure path is closed.
    """

    def __init__(
        self,
        connector: SshConnector,
        negotiator: BootstrapNegotiator,
        sequencer: ProvisioningSequencer,
        *,
        handoff: Optional[ChannelHandoff] = None,
        bus: Optional[EventBus] = None,
        logger: Optional[logging.Logger] = None,
        run_id: Optional[str] = None,
    ):
        self.connector = connector
        self.negotiator = negotiator
        self.sequencer = sequencer
        self.logger = logger or logging.getLogger("nodelaunch")
        self.handoff = handoff or ChannelHandoff(logger=self.logger)
        self.bus = bus or EventBus()
        self.run_id = run_id or str(uuid.uuid4())

    def _emit(self, target: TargetDescriptor, phase: str, status: str, message: str) -> None:
        self.bus.emit(LifecycleEvent(**new_ctx(target.instance_id, self.run_id), phase=phase, status=status, message=message))

    def _finish(self, target: TargetDescriptor, result: LaunchResult) -> LaunchResult:
        self.bus.emit(
            LaunchSummary(
                **new_ctx(target.instance_id, self.run_id),
                status=result.status.value,
                failure=result.failure.value if result.failure else None,
                detail=result.detail,
            )
        )
        return result

    def _fail(self, target: TargetDescriptor, phase: str, failure: FailureKind, detail: str) -> LaunchResult:
        self._emit(target, phase, "FAILURE", detail)
        return self._finish(target, LaunchResult.failed(failure, detail))

    def _working_session(self, target: TargetDescriptor) -> tuple[Optional[SshSession], Optional[LaunchResult]]:
        """
        Connect and negotiate. Returns the privileged session, or a failed result.
        """
        self._emit(target, "connect", "START", f"Connecting to {target.instance_id}")
        session = self.connector.connect(target)
        self._emit(target, "connect", "SUCCESS", f"Connected to {session.host}:{session.port}")

        self._emit(target, "authenticate", "START", f"Authenticating as {target.admin_user}")
        negotiation = self.negotiator.negotiate(session, target)
        if negotiation.outcome is BootstrapOutcome.FAILED:
            # the negotiator closed the session already
            phase = "escalate" if negotiation.failure is FailureKind.ESCALATION_FAILED else "authenticate"
            return None, self._fail(target, phase, negotiation.failure, negotiation.detail)

        if negotiation.outcome is BootstrapOutcome.SAME_USER:
            self._emit(target, "authenticate", "SUCCESS", f"Authenticated as {target.admin_user}")
            return session, None

        self._emit(target, "escalate", "SUCCESS", f"Authorized keys copied to {target.privileged_user}")
        self._emit(target, "reconnect", "START", f"Reconnecting as {target.privileged_user}")
        session = self.connector.connect(target)
        try:
            authenticated = self.negotiator.authenticate_privileged(session, target)
        except BaseException:
            session.close()
            raise
        if not authenticated:
            self.logger.info("Authentication failed")
            session.close()
            return None, self._fail(
                target, "reconnect", FailureKind.AUTH_FAILED,
                f"could not authenticate as {target.privileged_user}",
            )
        self._emit(target, "reconnect", "SUCCESS", f"Authenticated as {target.privileged_user}")
        return session, None

    def launch(self, target: TargetDescriptor, binder: Optional[ChannelBinder] = None) -> LaunchResult:
        session: Optional[SshSession] = None
        handed_off = False
        self.logger.info("[%s] Launching agent over SSH (run_id=%s)", target.instance_id, self.run_id)
        try:
            session, failed = self._working_session(target)
            if failed is not None:
                return failed

            self._emit(target, "provision", "START", "Provisioning node")
            process = self.sequencer.provision(session, target)
            self._emit(target, "provision", "SUCCESS", f"Agent started: {process.command}")

            channel = self.handoff.bind(process, binder)
            handed_off = True
            self._emit(target, "handoff", "SUCCESS", "Agent channel handed off")
            return self._finish(target, LaunchResult.handed_off(channel))
        except LaunchError as exc:
            self.logger.info("Launch aborted: %s", exc)
            return self._fail(target, "launch", exc.kind, str(exc))
        except Exception as exc:
            self.logger.info(
                "Unexpected failure: caught %s that said: %s", type(exc).__name__, exc
            )
            self.logger.debug("Unexpected failure detail", exc_info=True)
            return self._fail(target, "launch", FailureKind.UNEXPECTED, f"{type(exc).__name__}: {exc}")
        finally:
            if session is not None and not handed_off:
                self.logger.info("Closing SSH connection...")
                session.close()
            self.logger.info("Session terminated.")
