# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/launcher/errors.py
from __future__ import annotations

from typing import Optional

from .models import FailureKind


class LaunchError(RuntimeError):
    """Base class for failures that abort a launch."""

    kind: FailureKind = FailureKind.UNEXPECTED


class UnreachableError(LaunchError):
    """Raised when the node did not accept SSH within the caller's max_wait."""

    kind = FailureKind.UNREACHABLE


class HostKeyRejectedError(LaunchError):
    """Raised when the host-key verifier refuses the presented key."""

    kind = FailureKind.HOST_KEY_REJECTED


class AuthFailedError(LaunchError):
    kind = FailureKind.AUTH_FAILED


class EscalationFailedError(LaunchError):
    kind = FailureKind.ESCALATION_FAILED


class RemoteCommandError(LaunchError):
    """Raised when a remote command exits non-zero."""

    kind = FailureKind.REMOTE_COMMAND_FAILED

    def __init__(self, message: str, *, command: Optional[str] = None, exit_status: Optional[int] = None):
        super().__init__(message)
        self.command = command
        self.exit_status = exit_status


class InitScriptError(RemoteCommandError):
    kind = FailureKind.INIT_FAILED


class InstallError(RemoteCommandError):
    kind = FailureKind.INSTALL_FAILED


class LaunchCancelled(LaunchError):
    kind = FailureKind.CANCELLED
