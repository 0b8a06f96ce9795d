import logging

import pytest


@pytest.fixture
def fake_key(monkeypatch):
    """Skip real key parsing in the negotiator; the fakes accept any key."""
    import nodelaunch.launcher.negotiator as negotiator

    monkeypatch.setattr(negotiator, "load_private_key", lambda material: "PKEY")
    return "PKEY"


@pytest.fixture
def progress_log(caplog):
    caplog.set_level(logging.DEBUG, logger="nodelaunch")
    return caplog
