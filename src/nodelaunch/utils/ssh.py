# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import io
import socket
import threading
from typing import Optional

import paramiko

from nodelaunch.launcher.errors import HostKeyRejectedError
from nodelaunch.launcher.host_keys import HostKeyVerifier, sha256_fingerprint


def load_private_key(material: str) -> paramiko.PKey:
    """
    Parse PEM/OpenSSH private key text. Ed25519, RSA and ECDSA keys are accepted.
    """
    for key_cls in (
        paramiko.Ed25519Key,
        paramiko.RSAKey,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key(io.StringIO(material))
        except paramiko.SSHException:
            continue
    raise paramiko.SSHException("Unsupported private key format")


class SshSession:
    """
    An open SSH transport plus a lazily created SFTP client for file transfer.

    Authentication is a separate step from connecting, so the same transport
    can be retried against a user whose key has not propagated yet.
    """

    def __init__(self, transport: paramiko.Transport, host: str, port: int):
        self.transport = transport
        self.host = host
        self.port = port
        self._sftp: Optional[paramiko.SFTPClient] = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def username(self) -> Optional[str]:
        return self.transport.get_username()

    def authenticate(self, username: str, pkey: paramiko.PKey) -> bool:
        try:
            self.transport.auth_publickey(username, pkey)
        except paramiko.AuthenticationException:
            return False
        return self.transport.is_authenticated()

    def open_channel(self) -> paramiko.Channel:
        return self.transport.open_session()

    def sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            self._sftp = paramiko.SFTPClient.from_transport(self.transport)
        return self._sftp

    def put_bytes(self, data: bytes, remote_path: str, *, mode: int = 0o644) -> None:
        """
        Write *data* to *remote_path*; the mode is set before any content lands.
        """
        with self.sftp().open(remote_path, "wb") as f:
            f.chmod(mode)
            f.write(data)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            if self._sftp is not None:
                self._sftp.close()
        finally:
            self.transport.close()


def open_session(
    host: str,
    port: int,
    *,
    verifier: HostKeyVerifier,
    timeout: float = 30.0,
) -> SshSession:
    """
    Connect a TCP socket, run the SSH handshake and check the server's host key.

    Raises OSError / paramiko.SSHException / EOFError while the node is not
    ready, HostKeyRejectedError when the verifier refuses the key.
    """
    sock = socket.create_connection((host, port), timeout=timeout)
    transport = paramiko.Transport(sock)
    try:
        transport.start_client(timeout=timeout)
        key = transport.get_remote_server_key()
        if not verifier.verify(host, port, key):
            raise HostKeyRejectedError(
                f"Host key {sha256_fingerprint(key)} for {host}:{port} was rejected"
            )
    except BaseException:
        transport.close()
        raise
    return SshSession(transport, host, port)
