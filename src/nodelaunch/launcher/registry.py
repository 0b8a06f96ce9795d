# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/registry.py

from __future__ import annotations

import logging
from typing import Optional

from nodelaunch.config.models import LauncherConfig, SshConfig
from nodelaunch.observers.dispatcher import EventBus
from nodelaunch.utils.cancel import CancelToken
from nodelaunch.utils.ssh import SshSession
from nodelaunch.utils.ssh_runner import SSHRunner

from .collaborators import KeyFileCredentialProvider, LocalArtifactSource, StaticInstanceDirectory
from .connector import SshConnector
from .handoff import ChannelHandoff
from .host_keys import AcceptAnyHostKey, HostKeyVerifier, KnownFingerprintVerifier
from .negotiator import BootstrapNegotiator
from .sequencer import ProvisioningSequencer
from .unix_launcher import UnixLauncher


def build_verifier(ssh: SshConfig) -> HostKeyVerifier:
    if ssh.host_key_policy == "fingerprint":
        return KnownFingerprintVerifier(ssh.host_key_fingerprints)
    return AcceptAnyHostKey()


def build_launcher(
    cfg: LauncherConfig,
    *,
    logger: Optional[logging.Logger] = None,
    bus: Optional[EventBus] = None,
    cancel: Optional[CancelToken] = None,
    run_id: Optional[str] = None,
) -> UnixLauncher:
    """
    Wire a UnixLauncher from config, using the static/local collaborators.
    """
    logger = logger or logging.getLogger("nodelaunch")
    cancel = cancel or CancelToken()

    def runner_factory(session: SshSession) -> SSHRunner:
        return SSHRunner(
            session,
            logger=logger,
            exit_status_attempts=cfg.ssh.exit_status_attempts,
            exit_status_interval=cfg.ssh.exit_status_interval,
        )

    connector = SshConnector(
        StaticInstanceDirectory(cfg.target.address, cfg.target.port),
        verifier=build_verifier(cfg.ssh),
        backoff=cfg.ssh.connect_backoff,
        connect_timeout=cfg.ssh.connect_timeout,
        max_wait=cfg.ssh.max_wait,
        cancel=cancel,
        logger=logger,
    )
    negotiator = BootstrapNegotiator(
        KeyFileCredentialProvider(cfg.ssh.key_path),
        auth_attempts=cfg.ssh.auth_attempts,
        auth_delay=cfg.ssh.auth_delay,
        cancel=cancel,
        logger=logger,
        runner_factory=runner_factory,
    )
    sequencer = ProvisioningSequencer(
        LocalArtifactSource(
            cfg.agent.artifact_path,
            cfg.artifacts.download_base_url,
            cfg.artifacts.download_query,
        ),
        runtime=cfg.runtime.to_spec(),
        agent=cfg.agent.to_spec(),
        logger=logger,
        runner_factory=runner_factory,
    )
    return UnixLauncher(
        connector,
        negotiator,
        sequencer,
        handoff=ChannelHandoff(logger=logger),
        bus=bus,
        logger=logger,
        run_id=run_id,
    )
