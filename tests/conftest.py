"""
Pytest fixtures for roadtrace tests.

Provides:
- Sample coordinates and traces
- Stub snappers (echo, failing, gated) that never touch the network
- Settings pointed at a fake backend
"""

import asyncio

import pytest

from roadtrace.config import Settings
from roadtrace.models.trace_models import Coordinate
from roadtrace.services.road_snapper import RoadSnapper


API_URL = "https://api.example.test"
SNAP_URL = f"{API_URL}/api/sumo/roads/snap"
NEAREST_URL = "https://router.example.test/nearest/v1/driving"


def c(lat, lng):
    return Coordinate(lat=lat, lng=lng)


async def settle(rounds: int = 20):
    """Let pending tasks run without advancing any real clock."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class EchoSnapper(RoadSnapper):
    """Returns its input unchanged and records every call."""

    name = "echo"

    def __init__(self, dedupes_server_side=False):
        self.dedupes_server_side = dedupes_server_side
        self.calls = []

    async def snap(self, points):
        self.calls.append(list(points))
        return list(points)


class FailingSnapper(RoadSnapper):
    name = "failing"

    def __init__(self, error):
        self.error = error
        self.calls = 0

    async def snap(self, points):
        self.calls += 1
        raise self.error


class GatedSnapper(RoadSnapper):
    """Echo snapper whose calls block until released one by one."""

    name = "gated"

    def __init__(self):
        self.calls = []
        self.gates = []

    async def snap(self, points):
        gate = asyncio.Event()
        self.calls.append(list(points))
        self.gates.append(gate)
        await gate.wait()
        return list(points)

    def release(self, index):
        self.gates[index].set()


@pytest.fixture
def sample_trace():
    return [c(40.0, -3.0), c(40.001, -3.001), c(40.002, -3.0005)]


@pytest.fixture
def settings():
    return Settings(api_url=API_URL, api_token="token-123", nearest_url=NEAREST_URL)
