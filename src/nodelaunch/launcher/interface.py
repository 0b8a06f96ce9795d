# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/interface.py

from __future__ import annotations

from typing import Callable, Optional, Protocol


class InstanceDirectory(Protocol):
    """
    Looks up where an instance can be reached. The address is re-read on every
    call since it changes while the instance boots.
    """

    def refresh_private_address(self, instance_id: str) -> str:
        """Return the current private address, or "0.0.0.0" while none is assigned."""
        ...

    def get_ssh_port(self, instance_id: str) -> int: ...


class CredentialProvider(Protocol):
    def get_admin_key_material(self) -> str:
        """Private key text for the shared administrative key pair."""
        ...


class ArtifactSource(Protocol):
    def presigned_download_url(self, path: str) -> str: ...

    def load_agent_artifact_bytes(self) -> bytes: ...


CloseListener = Callable[[Optional[BaseException]], None]


class AgentChannel(Protocol):
    """
    The caller's messaging channel once it is bound to the agent's stdio.

    Listeners are called exactly once, with the cause (None for an orderly
    close), in the order they were added. A listener added after the channel
    closed is called immediately.
    """

    def add_close_listener(self, listener: CloseListener) -> None: ...

    def start(self) -> None: ...

    def send(self, data: bytes) -> None: ...

    def close(self, cause: Optional[BaseException] = None) -> None: ...
