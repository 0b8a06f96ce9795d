# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/nodelaunch/cli/app.py
from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError

from nodelaunch.config.loader import load_config
from nodelaunch.launcher.channel import ChannelClosedError, StreamChannel
from nodelaunch.launcher.handoff import stream_channel_binder
from nodelaunch.launcher.models import LaunchResult
from nodelaunch.launcher.registry import build_launcher
from nodelaunch.logging.log import init_logging
from nodelaunch.observers.dispatcher import EventBus
from nodelaunch.observers.jsonfile import JsonFileObserver
from nodelaunch.observers.logger import LoggerObserver
from nodelaunch.utils.cancel import CancelToken


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Bootstrap an agent on a remote node over SSH")

EXIT_INTERRUPTED = 130


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _load(config: str):
    try:
        return load_config(config)
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        typer.secho(f"Invalid config {config}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


def _write_stdout(chunk: bytes) -> None:
    out = sys.stdout.buffer
    out.write(chunk)
    out.flush()


def _join(thread: threading.Thread, timeout: float = 0.2) -> None:
    thread.join(timeout)


def _launch_interruptibly(launcher, target, binder, cancel: CancelToken) -> LaunchResult:
    """
    Run the launch on a worker thread so Ctrl-C lands here while it waits.

    An interrupt cancels the token; the launch then unwinds through its own
    cleanup (closing any session it holds) before we exit with 130.
    """
    outcome = {}

    def run() -> None:
        try:
            outcome["result"] = launcher.launch(target, binder=binder)
        except BaseException as exc:
            outcome["error"] = exc

    worker = threading.Thread(target=run, name="launch", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            _join(worker)
    except KeyboardInterrupt:
        cancel.cancel()
        typer.secho("Launch interrupted, cleaning up", fg=typer.colors.YELLOW, err=True)
        worker.join()
        result = outcome.get("result")
        if result is not None and result.ok:
            result.channel.close()
        raise typer.Exit(code=EXIT_INTERRUPTED)

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


def _pump_stdin(channel: StreamChannel) -> None:
    """
    Forward local stdin to the agent until EOF, then close the channel.
    """
    stdin = sys.stdin.buffer
    try:
        while True:
            data = stdin.read1(32768)
            if not data:
                break
            channel.send(data)
    except ChannelClosedError:
        return
    channel.close()


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def launch(
    config: str = typer.Argument(..., help="Launcher definition YAML"),
    debug: bool = typer.Option(False, "--debug"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Where run logs are written"),
    events_file: Optional[Path] = typer.Option(None, "--events-file", help="JSONL file for lifecycle events"),
):
    """
    Bootstrap the node and bridge the agent's stdio to this process's stdin/stdout.
    """
    cfg = _load(config)
    logger, run_id, log_path = init_logging(base_dir=log_dir, instance=cfg.target.instance_id, verbose=debug)

    bus = EventBus(
        observers=[
            LoggerObserver(logger),
            JsonFileObserver(events_file or log_path.with_suffix(".jsonl")),
        ]
    )
    cancel = CancelToken()
    launcher = build_launcher(cfg, logger=logger, bus=bus, cancel=cancel, run_id=run_id)

    result = _launch_interruptibly(
        launcher, cfg.to_target(), stream_channel_binder(_write_stdout), cancel
    )

    if not result.ok:
        typer.secho(
            f"Launch failed ({result.failure.value}): {result.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    channel = result.channel
    threading.Thread(target=_pump_stdin, args=(channel,), name="stdin-pump", daemon=True).start()
    try:
        channel.wait_closed()
    except KeyboardInterrupt:
        channel.close()
        typer.secho("Agent channel interrupted", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=EXIT_INTERRUPTED)
    if channel.cause is not None:
        logger.debug("agent channel closed with %r", channel.cause)


@app.command("check-config")
def check_config(
    config: str = typer.Argument(..., help="Launcher definition YAML"),
):
    """
    Validate a launcher definition and print what would be done.
    """
    cfg = _load(config)
    target = cfg.to_target()
    runtime = cfg.runtime.to_spec()
    agent = cfg.agent.to_spec()

    typer.secho("Launcher config OK", bold=True)
    typer.echo(f"  Instance     : {target.instance_id}")
    typer.echo(f"  Address      : {cfg.target.address or '(unassigned)'}:{cfg.target.port}")
    typer.echo(f"  Admin user   : {target.admin_user}")
    if not target.is_privileged:
        typer.echo(f"  Escalation   : {target.root_command_prefix!r} -> {target.privileged_user}")
    typer.echo(f"  Host keys    : {cfg.ssh.host_key_policy}")
    typer.echo(f"  Init script  : {'yes' if target.init_script.strip() else 'no'}")
    typer.echo(f"  Runtime      : {runtime.version} ({runtime.resolved_archive_path})")
    typer.echo(f"  Agent        : {cfg.agent.artifact_path} -> {agent.remote_path}")


if __name__ == "__main__":
    app()
