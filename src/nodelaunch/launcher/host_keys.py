# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/host_keys.py

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Iterable, Protocol

import paramiko

log = logging.getLogger("nodelaunch")


def sha256_fingerprint(key: paramiko.PKey) -> str:
    """OpenSSH-style fingerprint, e.g. ``SHA256:47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU``."""
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


class HostKeyVerifier(Protocol):
    def verify(self, hostname: str, port: int, key: paramiko.PKey) -> bool: ...


class AcceptAnyHostKey:
    """
    Accepts whatever host key the server presents.

    Freshly launched cloud instances generate their host keys on first boot
    and there is no step in which an operator could pre-authorize them, so
    trust is placed in the network path instead. Anyone able to intercept
    that path can impersonate the node.
    """

    def verify(self, hostname: str, port: int, key: paramiko.PKey) -> bool:
        log.debug(
            "Accepting %s host key %s from %s:%d without verification",
            key.get_name(), sha256_fingerprint(key), hostname, port,
        )
        return True


class KnownFingerprintVerifier:
    """
    Accepts only host keys whose SHA256 fingerprint is in *fingerprints*.
    """

    def __init__(self, fingerprints: Iterable[str]):
        self.fingerprints = {self._normalize(f) for f in fingerprints}

    @staticmethod
    def _normalize(fingerprint: str) -> str:
        fp = fingerprint.strip()
        prefix, sep, digest = fp.partition(":")
        if sep and prefix.upper() == "SHA256":
            fp = digest
        # the base64 digest itself is case-sensitive
        return "SHA256:" + fp.rstrip("=")

    def verify(self, hostname: str, port: int, key: paramiko.PKey) -> bool:
        fp = sha256_fingerprint(key)
        if fp in self.fingerprints:
            return True
        log.warning("Host key %s presented by %s:%d is not trusted", fp, hostname, port)
        return False
