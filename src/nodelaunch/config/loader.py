# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from .models import LauncherConfig

log = logging.getLogger("nodelaunch")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_secrets_file(config_path: Path) -> Path | None:
    """
    Locate secrets.yaml using this priority:

    1. NODELAUNCH_SECRETS_FILE environment variable (explicit override)
    2. secrets.yaml in the same directory as the launcher config
    """
    env = os.environ.get("NODELAUNCH_SECRETS_FILE")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("NODELAUNCH_SECRETS_FILE=%s does not exist, skipping", env)
        return None

    p = config_path.parent / "secrets.yaml"
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def _resolve(base: Path, value: str | Path) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else base / p


def load_config(path: str | Path) -> LauncherConfig:
    """
    Load and validate a launcher YAML config.

    Secrets (typically ``ssh.key_path`` or ``artifacts.download_query``) can
    come from a ``secrets.yaml`` next to the config, from the file named by
    ``NODELAUNCH_SECRETS_FILE``, or from ``${ENV_VAR}`` placeholders.

    Relative paths (key, agent artifact, init script file) are resolved
    against the config file's directory. ``target.init_script_file`` is read
    into ``target.init_script`` unless an inline script is also given.
    """
    path = Path(path)
    data = _load_yaml(path)

    secrets_path = _find_secrets_file(path)
    if secrets_path:
        log.debug("Merging secrets from %s", secrets_path)
        _deep_merge(data, _load_yaml(secrets_path))
    else:
        log.debug("No secrets.yaml found, proceeding without secrets merge")

    cfg = LauncherConfig.model_validate(data)

    base = path.parent
    cfg.ssh.key_path = _resolve(base, cfg.ssh.key_path)
    cfg.agent.artifact_path = _resolve(base, cfg.agent.artifact_path)
    if cfg.target.init_script_file is not None:
        cfg.target.init_script_file = _resolve(base, cfg.target.init_script_file)
        if not cfg.target.init_script.strip():
            cfg.target.init_script = cfg.target.init_script_file.read_text(encoding="utf-8")

    return cfg
