# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one launch
    instance: str     # instance being bootstrapped

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(instance: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": now_iso(),
        "run_id": run_id or str(uuid.uuid4()),
        "instance": instance,
    }


# ---------------------------------------------------------------------
# Launch lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class LifecycleEvent(BaseEvent):
    phase: str        # connect | authenticate | escalate | reconnect | provision | handoff
    status: str       # START | SUCCESS | FAILURE
    message: str


@dataclass(frozen=True)
class LaunchSummary(BaseEvent):
    status: str                 # "handed_off" | "failed"
    failure: Optional[str] = None
    detail: str = ""
