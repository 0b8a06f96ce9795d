# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/nodelaunch/logging/log.py

from __future__ import annotations

import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "nodelaunch",
    instance: str | None = None,
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    Set up logging for one launch.

    The run log file gets everything at DEBUG, including paramiko's own
    transport messages. The console (stderr, never stdout, which carries the
    agent channel) gets INFO, or DEBUG with verbose=True.

    Returns (logger, run_id, log_path); run_id is shared with the observers.
    """
    run_id = str(uuid.uuid4())

    if base_dir is None:
        base_dir = Path.home() / ".nodelaunch" / "logs"
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    stem = f"{name}-{instance}" if instance else name
    log_path = base_dir / f"{stem}-{ts}-{run_id}.log"

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)

    logger = logging.getLogger(name)
    _reset(logger)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(fh)
    logger.addHandler(ch)

    # paramiko logs handshake/auth details; keep them in the file only
    transport_log = logging.getLogger("paramiko")
    _reset(transport_log)
    transport_log.setLevel(logging.DEBUG if verbose else logging.INFO)
    transport_log.propagate = False
    transport_log.addHandler(fh)

    logger.info("=== nodelaunch run started ===")
    logger.info("run_id=%s", run_id)
    logger.info("log_file=%s", log_path)

    return logger, run_id, log_path
