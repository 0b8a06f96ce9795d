import json
import logging
import sys
from pathlib import Path

from nodelaunch.logging.log import init_logging
from nodelaunch.observers.dispatcher import EventBus
from nodelaunch.observers.events import LaunchSummary, LifecycleEvent, new_ctx
from nodelaunch.observers.jsonfile import JsonFileObserver
from nodelaunch.observers.logger import LoggerObserver


def _event(**kw):
    kw.setdefault("phase", "connect")
    kw.setdefault("status", "START")
    kw.setdefault("message", "Connecting to i-1")
    return LifecycleEvent(**new_ctx("i-1", "run-1"), **kw)


class Boom:
    def notify(self, event):
        raise RuntimeError("observer bug")


class Collect:
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)


def test_new_ctx_fills_run_id_and_timestamp():
    ctx = new_ctx("i-1")
    assert ctx["instance"] == "i-1"
    assert ctx["run_id"]
    assert ctx["ts"].endswith("Z")
    assert new_ctx("i-1", "fixed")["run_id"] == "fixed"


def test_bus_keeps_going_when_an_observer_fails():
    sink = Collect()
    bus = EventBus([Boom()])
    bus.subscribe(sink)

    bus.emit(_event())

    assert len(sink.events) == 1


def test_json_file_observer_appends_lines(tmp_path: Path):
    path = tmp_path / "events" / "run.jsonl"
    obs = JsonFileObserver(path)

    obs.notify(_event())
    obs.notify(LaunchSummary(**new_ctx("i-1", "run-1"), status="failed", failure="auth_failed", detail="nope"))

    lines = [json.loads(line) for line in path.read_text().splitlines()]
    assert [l["type"] for l in lines] == ["LifecycleEvent", "LaunchSummary"]
    assert lines[0]["phase"] == "connect"
    assert lines[1]["failure"] == "auth_failed"
    assert all(l["run_id"] == "run-1" for l in lines)


def test_logger_observer_writes_event_fields(caplog):
    logger = logging.getLogger("nodelaunch.events-test")
    caplog.set_level(logging.DEBUG, logger=logger.name)

    LoggerObserver(logger).notify(_event(status="SUCCESS"))

    msg = caplog.records[-1].getMessage()
    assert msg.startswith("[EVENT] LifecycleEvent:")
    assert "status=SUCCESS" in msg
    assert "ts=" not in msg


def test_logger_observer_raises_failures_to_warning(caplog):
    logger = logging.getLogger("nodelaunch.events-test")
    caplog.set_level(logging.DEBUG, logger=logger.name)
    obs = LoggerObserver(logger)

    obs.notify(_event(status="FAILURE", message="Authentication failed"))
    obs.notify(LaunchSummary(**new_ctx("i-1", "run-1"), status="failed", failure="auth_failed"))
    obs.notify(LaunchSummary(**new_ctx("i-1", "run-1"), status="handed_off"))

    assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.WARNING, logging.DEBUG]
    assert "failure=" not in caplog.records[-1].getMessage()


def test_init_logging_writes_run_log(tmp_path: Path):
    transport_log = logging.getLogger("paramiko")
    saved = (list(transport_log.handlers), transport_log.level, transport_log.propagate)

    logger, run_id, log_path = init_logging(base_dir=tmp_path, name="nodelaunch-logtest", instance="i-0abc")
    try:
        logger.info("hello from test")
        transport_log.debug("kex algos")
        for h in logger.handlers:
            h.flush()

        assert log_path.parent == tmp_path
        assert log_path.name.startswith("nodelaunch-logtest-i-0abc-")
        assert run_id in log_path.name
        text = log_path.read_text()
        assert f"run_id={run_id}" in text
        assert "hello from test" in text
        # paramiko goes to the file only, at INFO unless verbose
        assert "kex algos" not in text
        assert transport_log.handlers == [h for h in logger.handlers if isinstance(h, logging.FileHandler)]

        console = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]
        assert console and console[0].level == logging.INFO
        assert console[0].stream is sys.stderr
    finally:
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()
        transport_log.handlers[:] = saved[0]
        transport_log.setLevel(saved[1])
        transport_log.propagate = saved[2]
