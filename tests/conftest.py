"""
Shared test fixtures for provider unit tests.
"""

import math
import pytest
from unittest.mock import Mock

from navpilot.control.state_store import StateStore
from navpilot.control.provider import AutopilotProvider, ProviderConfig
from navpilot.host import LoopbackHost
from navpilot.n2k.commands import N2KCommands
from navpilot.plugin import NavPilotPlugin


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def publish():
    """Mock device-state publish function."""
    return Mock()


@pytest.fixture
def store(publish):
    """State store for device 711c."""
    return StateStore("711c", publish=publish)


@pytest.fixture
def sent():
    """Messages handed to the bus send channel."""
    return []


@pytest.fixture
def commands(sent):
    """Command sender recording to the `sent` list."""
    return N2KCommands(send=sent.append)


@pytest.fixture
def provider(store, commands):
    """Provider with the default 5-mode vocabulary."""
    return AutopilotProvider(store, commands, ProviderConfig(device_id="711c"))


@pytest.fixture
def host():
    """In-memory plugin host."""
    return LoopbackHost()


@pytest.fixture
def plugin(host):
    """Started plugin with timers long enough never to fire in a test."""
    p = NavPilotPlugin(host)
    p.start({"deviceId": "711c", "detectionTimeout": 3600})
    yield p
    p.stop()


def heading_msg(degrees: float, pgn: int = 127250) -> dict:
    return {"pgn": pgn, "src": 3, "fields": {"Heading": degrees}}


def rudder_msg(degrees: float) -> dict:
    return {"pgn": 127245, "src": 3, "fields": {"Position": degrees}}


def xte_msg(metres: float) -> dict:
    return {"pgn": 129283, "src": 3, "fields": {"XTE": metres}}


def htc_msg(**flags) -> dict:
    fields = {
        "rudderLimitExceeded": "No",
        "offHeadingLimitExceeded": "No",
        "offTrackLimitExceeded": "No",
        "override": "No",
    }
    fields.update(flags)
    return {"pgn": 127237, "src": 3, "fields": fields}


HALF_PI = math.pi / 2
