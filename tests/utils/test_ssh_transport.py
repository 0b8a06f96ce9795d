import socket
import threading

import paramiko
import pytest

from nodelaunch.launcher.errors import HostKeyRejectedError
from nodelaunch.launcher.host_keys import AcceptAnyHostKey, KnownFingerprintVerifier, sha256_fingerprint
from nodelaunch.utils.ssh import open_session


@pytest.fixture(scope="module")
def server_key():
    return paramiko.RSAKey.generate(2048)


@pytest.fixture
def sshd(server_key):
    """
    One-connection SSH server on localhost that only does the handshake.
    Yields the port it listens on.
    """
    transport_cls = paramiko.Transport      # before any test patches it
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    served = []

    def serve():
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        t = transport_cls(conn)
        t.add_server_key(server_key)
        served.append(t)
        try:
            t.start_server(server=paramiko.ServerInterface())
        except (paramiko.SSHException, EOFError, OSError):
            # client hung up mid-handshake
            pass

    thread = threading.Thread(target=serve, name="test-sshd", daemon=True)
    thread.start()
    yield listener.getsockname()[1]
    listener.close()
    for t in served:
        t.close()
    thread.join(timeout=5)


@pytest.fixture
def client_transports(monkeypatch):
    """Records the transports open_session creates."""
    created = []

    class RecordingTransport(paramiko.Transport):
        def __init__(self, *args, **kw):
            super().__init__(*args, **kw)
            created.append(self)

    monkeypatch.setattr(paramiko, "Transport", RecordingTransport)
    return created


class RecordingVerifier:
    def __init__(self, inner):
        self.inner = inner
        self.seen = []

    def verify(self, hostname, port, key):
        self.seen.append((hostname, port, sha256_fingerprint(key)))
        return self.inner.verify(hostname, port, key)


def test_accepted_host_key_yields_active_session(sshd, server_key):
    verifier = RecordingVerifier(AcceptAnyHostKey())

    session = open_session("127.0.0.1", sshd, verifier=verifier, timeout=10)
    try:
        assert session.transport.is_active()
        assert (session.host, session.port) == ("127.0.0.1", sshd)
        # the verifier saw the key the server actually presented
        assert verifier.seen == [("127.0.0.1", sshd, sha256_fingerprint(server_key))]
    finally:
        session.close()
    assert not session.transport.is_active()


def test_pinned_fingerprint_accepts_matching_server(sshd, server_key):
    verifier = KnownFingerprintVerifier([sha256_fingerprint(server_key)])

    session = open_session("127.0.0.1", sshd, verifier=verifier, timeout=10)
    try:
        assert session.transport.is_active()
    finally:
        session.close()


def test_rejected_host_key_raises_and_closes_transport(sshd, client_transports):
    with pytest.raises(HostKeyRejectedError, match="was rejected"):
        open_session("127.0.0.1", sshd, verifier=KnownFingerprintVerifier(["SHA256:nope"]), timeout=10)

    assert len(client_transports) == 1
    assert not client_transports[0].is_active()
