# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

UNASSIGNED_ADDRESS = "0.0.0.0"
EXIT_STATUS_UNKNOWN = -1

INIT_SCRIPT_PATH = "/tmp/init.sh"
INIT_MARKER_PATH = "/.hudson-run-init"


@dataclass(frozen=True)
class TargetDescriptor:
    """
    The remote node to bootstrap.

    The host address is not stored here: it is resolved through the instance
    directory on every connection attempt, because it may still be unassigned
    while the instance boots.
    """
    instance_id: str
    admin_user: str = "root"
    privileged_user: str = "root"
    root_command_prefix: str = ""       # e.g. "sudo " when admin_user is not root
    init_script: str = ""
    runtime_options: str = ""           # appended to the agent launch command

    @property
    def is_privileged(self) -> bool:
        return self.admin_user == self.privileged_user

    @property
    def privileged_home(self) -> str:
        if self.privileged_user == "root":
            return "/root"
        return f"/home/{self.privileged_user}"


@dataclass(frozen=True)
class RuntimeSpec:
    """
    The runtime the agent needs, and how to install it when missing.
    """
    version: str = "java1.6.0_12"
    archive_path: str = "/hudson-ci/jdk/linux-i586/{version}.tgz"
    install_root: str = "/usr"
    link_path: str = "/bin/java"
    probe_command: str = "java -fullversion"
    launch_command: str = "java"

    @property
    def resolved_archive_path(self) -> str:
        return self.archive_path.format(version=self.version)


@dataclass(frozen=True)
class AgentSpec:
    artifact_name: str = "agent.jar"
    remote_dir: str = "/tmp"

    @property
    def remote_path(self) -> str:
        return f"{self.remote_dir.rstrip('/')}/{self.artifact_name}"


class FailureKind(str, Enum):
    UNREACHABLE = "unreachable"
    HOST_KEY_REJECTED = "host_key_rejected"
    AUTH_FAILED = "auth_failed"
    ESCALATION_FAILED = "escalation_failed"
    INIT_FAILED = "init_failed"
    INSTALL_FAILED = "install_failed"
    REMOTE_COMMAND_FAILED = "remote_command_failed"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class BootstrapOutcome(str, Enum):
    FAILED = "failed"
    SAME_USER = "same_user"      # keep the authenticated session as the working session
    RECONNECT = "reconnect"      # escalation done, open a new session as the privileged user


@dataclass(frozen=True)
class Negotiation:
    outcome: BootstrapOutcome
    failure: Optional[FailureKind] = None
    detail: str = ""

    @classmethod
    def failed(cls, failure: FailureKind, detail: str) -> "Negotiation":
        return cls(BootstrapOutcome.FAILED, failure, detail)


class LaunchStatus(str, Enum):
    HANDED_OFF = "handed_off"
    FAILED = "failed"


@dataclass(frozen=True)
class LaunchResult:
    status: LaunchStatus
    failure: Optional[FailureKind] = None
    detail: str = ""
    channel: Any = None        # the handed-off AgentChannel on success

    @property
    def ok(self) -> bool:
        return self.status is LaunchStatus.HANDED_OFF

    @classmethod
    def handed_off(cls, channel: Any) -> "LaunchResult":
        return cls(LaunchStatus.HANDED_OFF, channel=channel)

    @classmethod
    def failed(cls, failure: FailureKind, detail: str = "") -> "LaunchResult":
        return cls(LaunchStatus.FAILED, failure=failure, detail=detail)
