"""
Shared fixtures for the server info tests.

FakeProcess stands in for psutil.Process; ManualClock is a clock the test
advances explicitly.
"""

from types import SimpleNamespace

import pytest


class FakeProcess:
    """psutil.Process stand-in with settable counters."""

    def __init__(self, user: float = 0.0, system: float = 0.0):
        self.user = user
        self.system = system
        self.rss = 50 * 1024 * 1024
        self.vms = 200 * 1024 * 1024
        self.threads = 4

    def cpu_times(self):
        return SimpleNamespace(user=self.user, system=self.system)

    def memory_info(self):
        return SimpleNamespace(rss=self.rss, vms=self.vms)

    def num_threads(self):
        return self.threads


class ManualClock:
    """Callable clock returning a value the test controls."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_process():
    return FakeProcess(user=10.0, system=2.0)


@pytest.fixture
def wall_clock():
    return ManualClock(1_700_000_000.0)


@pytest.fixture
def hr_clock():
    return ManualClock(0.0)


@pytest.fixture
def make_clock():
    return ManualClock


@pytest.fixture
def make_process():
    return FakeProcess
