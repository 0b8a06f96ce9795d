# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/config/models.py

from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from nodelaunch.launcher.models import AgentSpec, RuntimeSpec, TargetDescriptor


class TargetConfig(BaseModel):
    """The node to bootstrap and how to get root on it."""

    instance_id: str
    address: Optional[str] = None        # unset: treated as not yet assigned
    port: int = Field(22, ge=1, le=65535)
    admin_user: str = "root"
    privileged_user: str = "root"
    root_command_prefix: str = ""        # e.g. "sudo "
    init_script: str = ""
    init_script_file: Optional[Path] = None
    runtime_options: str = ""            # e.g. "-Xmx512m"


class SshConfig(BaseModel):
    key_path: Path
    host_key_policy: Literal["accept-any", "fingerprint"] = "accept-any"
    host_key_fingerprints: List[str] = Field(default_factory=list)
    connect_timeout: float = 30.0
    connect_backoff: float = 5.0
    max_wait: Optional[float] = None     # unset: wait for sshd forever
    auth_attempts: int = Field(20, ge=1)
    auth_delay: float = 10.0
    exit_status_attempts: int = Field(10, ge=0)
    exit_status_interval: float = 0.1

    @model_validator(mode="after")
    def _fingerprints_required(self) -> "SshConfig":
        if self.host_key_policy == "fingerprint" and not self.host_key_fingerprints:
            raise ValueError("host_key_policy 'fingerprint' needs at least one host_key_fingerprints entry")
        return self


class RuntimeConfig(BaseModel):
    version: str = "java1.6.0_12"
    archive_path: str = "/hudson-ci/jdk/linux-i586/{version}.tgz"
    install_root: str = "/usr"
    link_path: str = "/bin/java"
    probe_command: str = "java -fullversion"
    launch_command: str = "java"

    def to_spec(self) -> RuntimeSpec:
        return RuntimeSpec(**self.model_dump())


class AgentConfig(BaseModel):
    artifact_path: Path
    artifact_name: Optional[str] = None  # defaults to the local file name
    remote_dir: str = "/tmp"

    def to_spec(self) -> AgentSpec:
        return AgentSpec(
            artifact_name=self.artifact_name or self.artifact_path.name,
            remote_dir=self.remote_dir,
        )


class ArtifactsConfig(BaseModel):
    download_base_url: str
    download_query: str = ""             # appended as query string, e.g. a signature


class LauncherConfig(BaseModel):
    target: TargetConfig
    ssh: SshConfig
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    agent: AgentConfig
    artifacts: ArtifactsConfig

    def to_target(self) -> TargetDescriptor:
        t = self.target
        return TargetDescriptor(
            instance_id=t.instance_id,
            admin_user=t.admin_user,
            privileged_user=t.privileged_user,
            root_command_prefix=t.root_command_prefix,
            init_script=t.init_script,
            runtime_options=t.runtime_options,
        )
