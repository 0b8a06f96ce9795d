# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/collaborators.py

from __future__ import annotations

from pathlib import Path
from typing import Optional
from urllib.parse import quote

from .models import UNASSIGNED_ADDRESS


class StaticInstanceDirectory:
    """
    Directory for a node whose address is already known (e.g. from an
    inventory or the CLI). An empty address behaves like an unassigned one.
    """

    def __init__(self, address: Optional[str], port: int = 22):
        self.address = address
        self.port = port

    def refresh_private_address(self, instance_id: str) -> str:
        return self.address or UNASSIGNED_ADDRESS

    def get_ssh_port(self, instance_id: str) -> int:
        return self.port


class KeyFileCredentialProvider:
    def __init__(self, key_path: str | Path):
        self.key_path = Path(key_path).expanduser()

    def get_admin_key_material(self) -> str:
        return self.key_path.read_text(encoding="utf-8")


class LocalArtifactSource:
    """
    Reads the agent artifact from local disk and builds runtime download URLs
    from a base URL (a mirror, or a bucket URL with an access query string).
    """

    def __init__(self, artifact_path: str | Path, download_base_url: str, query: str = ""):
        self.artifact_path = Path(artifact_path).expanduser()
        self.download_base_url = download_base_url.rstrip("/")
        self.query = query.lstrip("?")

    def presigned_download_url(self, path: str) -> str:
        url = f"{self.download_base_url}/{quote(path.lstrip('/'))}"
        if self.query:
            url = f"{url}?{self.query}"
        return url

    def load_agent_artifact_bytes(self) -> bytes:
        return self.artifact_path.read_bytes()
