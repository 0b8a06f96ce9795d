from pathlib import Path
import textwrap

import pytest
from pydantic import ValidationError

from nodelaunch.config.loader import load_config


MINIMAL = """
    target:
      instance_id: i-0abc123
      address: 10.0.0.5
    ssh:
      key_path: keys/admin.pem
    agent:
      artifact_path: dist/slave.jar
    artifacts:
      download_base_url: https://mirror.example.test
"""


@pytest.fixture(autouse=True)
def _no_secrets_env(monkeypatch):
    monkeypatch.delenv("NODELAUNCH_SECRETS_FILE", raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(textwrap.dedent(text))
    return path


def test_load_config_minimal_ok(tmp_path: Path):
    cfg = load_config(_write(tmp_path / "launcher.yaml", MINIMAL))

    assert cfg.target.instance_id == "i-0abc123"
    assert cfg.target.port == 22
    assert cfg.ssh.auth_attempts == 20
    assert cfg.ssh.auth_delay == 10.0
    assert cfg.ssh.connect_backoff == 5.0
    assert cfg.ssh.max_wait is None
    assert cfg.runtime.version == "java1.6.0_12"

    # relative paths are anchored at the config's directory
    assert cfg.ssh.key_path == tmp_path / "keys" / "admin.pem"
    assert cfg.agent.artifact_path == tmp_path / "dist" / "slave.jar"
    assert cfg.agent.to_spec().remote_path == "/tmp/slave.jar"


def test_to_target_carries_escalation_settings(tmp_path: Path):
    cfg = load_config(_write(tmp_path / "launcher.yaml", """
        target:
          instance_id: i-1
          admin_user: ubuntu
          privileged_user: builder
          root_command_prefix: "sudo "
          runtime_options: -Xmx512m
        ssh:
          key_path: /keys/admin.pem
        agent:
          artifact_path: /opt/agent.jar
        artifacts:
          download_base_url: https://mirror.example.test
    """))

    target = cfg.to_target()
    assert target.admin_user == "ubuntu"
    assert target.root_command_prefix == "sudo "
    assert target.privileged_home == "/home/builder"
    assert not target.is_privileged
    assert target.runtime_options == "-Xmx512m"
    assert cfg.ssh.key_path == Path("/keys/admin.pem")


def test_secrets_yaml_next_to_config_is_merged(tmp_path: Path):
    _write(tmp_path / "secrets.yaml", """
        artifacts:
          download_query: Signature=s3cr3t&Expires=99
        ssh:
          key_path: ""
    """)
    cfg = load_config(_write(tmp_path / "launcher.yaml", MINIMAL))

    assert cfg.artifacts.download_query == "Signature=s3cr3t&Expires=99"
    # empty secrets never clobber configured values
    assert cfg.ssh.key_path == tmp_path / "keys" / "admin.pem"
    assert cfg.artifacts.download_base_url == "https://mirror.example.test"


def test_secrets_file_from_env_wins(tmp_path: Path, monkeypatch):
    _write(tmp_path / "secrets.yaml", "artifacts:\n  download_query: local\n")
    other = _write(tmp_path / "elsewhere.yaml", "artifacts:\n  download_query: from-env\n")
    monkeypatch.setenv("NODELAUNCH_SECRETS_FILE", str(other))

    cfg = load_config(_write(tmp_path / "launcher.yaml", MINIMAL))
    assert cfg.artifacts.download_query == "from-env"


def test_missing_secrets_file_from_env_is_skipped(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("NODELAUNCH_SECRETS_FILE", str(tmp_path / "nope.yaml"))
    cfg = load_config(_write(tmp_path / "launcher.yaml", MINIMAL))
    assert cfg.artifacts.download_query == ""


def test_env_placeholders_are_expanded(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("NODE_ADDR", "10.1.2.3")
    cfg = load_config(_write(tmp_path / "launcher.yaml", MINIMAL.replace("10.0.0.5", "${NODE_ADDR}")))
    assert cfg.target.address == "10.1.2.3"


def test_init_script_file_is_read(tmp_path: Path):
    (tmp_path / "init.sh").write_text("#!/bin/sh\necho hi\n")
    text = MINIMAL.replace("address: 10.0.0.5", "address: 10.0.0.5\n      init_script_file: init.sh")
    cfg = load_config(_write(tmp_path / "launcher.yaml", text))

    assert cfg.target.init_script_file == tmp_path / "init.sh"
    assert cfg.to_target().init_script == "#!/bin/sh\necho hi\n"


def test_inline_init_script_beats_file(tmp_path: Path):
    (tmp_path / "init.sh").write_text("from file\n")
    text = MINIMAL.replace(
        "address: 10.0.0.5",
        "address: 10.0.0.5\n      init_script: inline\n      init_script_file: init.sh",
    )
    cfg = load_config(_write(tmp_path / "launcher.yaml", text))
    assert cfg.target.init_script == "inline"


def test_fingerprint_policy_requires_fingerprints(tmp_path: Path):
    text = MINIMAL.replace("key_path: keys/admin.pem", "key_path: k\n      host_key_policy: fingerprint")
    with pytest.raises(ValidationError, match="host_key_fingerprints"):
        load_config(_write(tmp_path / "launcher.yaml", text))


def test_missing_required_section_fails(tmp_path: Path):
    with pytest.raises(ValidationError):
        load_config(_write(tmp_path / "launcher.yaml", "target:\n  instance_id: i-1\n"))
