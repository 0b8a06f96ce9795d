import base64
import hashlib

import paramiko
import pytest

from nodelaunch.launcher.host_keys import AcceptAnyHostKey, KnownFingerprintVerifier, sha256_fingerprint


@pytest.fixture(scope="module")
def host_key():
    return paramiko.RSAKey.generate(1024)


@pytest.fixture(scope="module")
def other_key():
    return paramiko.RSAKey.generate(1024)


def test_fingerprint_matches_openssh_format(host_key):
    expected = base64.b64encode(hashlib.sha256(host_key.asbytes()).digest()).decode().rstrip("=")
    fp = sha256_fingerprint(host_key)
    assert fp == f"SHA256:{expected}"
    assert not fp.endswith("=")


def test_accept_any_trusts_every_key(host_key, other_key):
    v = AcceptAnyHostKey()
    assert v.verify("10.0.0.5", 22, host_key)
    assert v.verify("10.0.0.5", 22, other_key)


def test_known_fingerprint_accepts_listed_key(host_key):
    fp = sha256_fingerprint(host_key)
    assert KnownFingerprintVerifier([fp]).verify("10.0.0.5", 22, host_key)
    # prefix and base64 padding are optional in config
    bare = fp[len("SHA256:"):] + "="
    assert KnownFingerprintVerifier([bare]).verify("10.0.0.5", 22, host_key)
    # so is the case of the prefix
    assert KnownFingerprintVerifier(["sha256:" + bare]).verify("10.0.0.5", 22, host_key)
    assert KnownFingerprintVerifier([" Sha256:" + bare + " "]).verify("10.0.0.5", 22, host_key)


def test_known_fingerprint_digest_is_case_sensitive(host_key):
    fp = sha256_fingerprint(host_key)
    digest = fp[len("SHA256:"):]
    flipped = digest.swapcase()
    if flipped == digest:
        pytest.skip("digest has no letters")
    assert KnownFingerprintVerifier(["SHA256:" + flipped]).verify("10.0.0.5", 22, host_key) is False


def test_known_fingerprint_rejects_other_key(host_key, other_key):
    v = KnownFingerprintVerifier([sha256_fingerprint(host_key)])
    assert v.verify("10.0.0.5", 22, other_key) is False
