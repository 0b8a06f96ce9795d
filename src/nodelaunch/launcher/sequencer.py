# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/sequencer.py

from __future__ import annotations

import logging
import posixpath
import shlex
from dataclasses import dataclass
from typing import Callable, Optional

import paramiko

from nodelaunch.utils.ssh import SshSession
from nodelaunch.utils.ssh_runner import SSHRunner

from .errors import InitScriptError, InstallError
from .interface import ArtifactSource
from .models import (
    INIT_MARKER_PATH,
    INIT_SCRIPT_PATH,
    AgentSpec,
    RuntimeSpec,
    TargetDescriptor,
)


@dataclass
class AgentProcess:
    """
    The launched agent. Its channel's stdout/stdin carry the agent protocol;
    stderr is left alone.
    """
    channel: paramiko.Channel
    session: SshSession
    command: str

    def read(self, size: int) -> bytes:
        return self.channel.recv(size)

    def write(self, data: bytes) -> None:
        self.channel.sendall(data)


class ProvisioningSequencer:
    """
    Runs the ordered provisioning steps on a privileged session:
      - init script        (once per filesystem, guarded by a marker file)
      - runtime check      (install the JDK from a presigned URL when missing)
      - artifact upload    (agent jar to /tmp)
      - agent launch       (left running on its own channel)
    Every failing step raises and aborts the launch; nothing is rolled back.
    """

    def __init__(
        self,
        artifacts: ArtifactSource,
        *,
        runtime: Optional[RuntimeSpec] = None,
        agent: Optional[AgentSpec] = None,
        logger: Optional[logging.Logger] = None,
        runner_factory: Callable[[SshSession], SSHRunner] | None = None,
    ):
        self.artifacts = artifacts
        self.runtime = runtime or RuntimeSpec()
        self.agent = agent or AgentSpec()
        self.logger = logger or logging.getLogger("nodelaunch")
        self.runner_factory = runner_factory or (lambda s: SSHRunner(s, logger=self.logger))

    # ------------------ steps ------------------

    def run_init_script(self, runner: SSHRunner, target: TargetDescriptor) -> bool:
        """
        Returns True when the script ran, False when it was skipped.
        """
        if not target.init_script.strip():
            return False
        if runner.run(f"test -e {INIT_MARKER_PATH}") == 0:
            self.logger.info("Init script already ran, skipping")
            return False

        self.logger.info("Executing init script")
        runner.put_bytes(target.init_script.encode("utf-8"), INIT_SCRIPT_PATH, mode=0o700)
        cmd = f"{target.root_command_prefix}{INIT_SCRIPT_PATH}"
        exit_status = runner.run_pty(cmd)
        if exit_status != 0:
            self.logger.info("init script failed: exit code=%d", exit_status)
            raise InitScriptError(
                f"init script failed: exit code={exit_status}", command=cmd, exit_status=exit_status
            )

        # leave the completion marker
        runner.put_bytes(b"", INIT_MARKER_PATH, mode=0o600)
        return True

    def install_command(self, url: str) -> str:
        rt = self.runtime
        archive = posixpath.join(rt.install_root, f"{rt.version}.tgz")
        executable = posixpath.join(rt.install_root, rt.version, "bin", "java")
        return (
            f"wget -nv -O {archive} {shlex.quote(url)}"
            f" && tar xz -C {rt.install_root} -f {archive}"
            f" && ln -s {executable} {rt.link_path}"
        )

    def ensure_runtime(self, runner: SSHRunner) -> bool:
        """
        Returns True when the runtime had to be installed.
        """
        self.logger.info("Verifying that java exists")
        if runner.run(self.runtime.probe_command) == 0:
            return False

        self.logger.info("Installing Java")
        url = self.artifacts.presigned_download_url(self.runtime.resolved_archive_path)
        cmd = self.install_command(url)
        exit_status = runner.run(cmd)
        if exit_status != 0:
            self.logger.info("Unable to install Java")
            raise InstallError(
                f"installing {self.runtime.version} exited with {exit_status}",
                command=cmd,
                exit_status=exit_status,
            )
        return True

    def deploy_artifact(self, runner: SSHRunner) -> str:
        self.logger.info("Copying %s", self.agent.artifact_name)
        runner.put_bytes(self.artifacts.load_agent_artifact_bytes(), self.agent.remote_path)
        return self.agent.remote_path

    def launch_command(self, target: TargetDescriptor) -> str:
        parts = [self.runtime.launch_command, target.runtime_options.strip(), "-jar", self.agent.remote_path]
        return " ".join(p for p in parts if p)

    def launch_agent(self, session: SshSession, target: TargetDescriptor) -> AgentProcess:
        self.logger.info("Launching agent")
        channel = session.open_channel()
        cmd = self.launch_command(target)
        self.logger.info("Running %s", cmd)
        try:
            channel.exec_command(cmd)
        except BaseException:
            channel.close()
            raise
        return AgentProcess(channel=channel, session=session, command=cmd)

    # ------------------ public API ------------------

    def provision(self, session: SshSession, target: TargetDescriptor) -> AgentProcess:
        runner = self.runner_factory(session)
        self.run_init_script(runner, target)
        self.ensure_runtime(runner)
        self.deploy_artifact(runner)
        return self.launch_agent(session, target)
