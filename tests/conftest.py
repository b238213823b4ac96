"""Common test fixtures for GaitIQ tests."""

import pytest

from gait import GaitConfig, GaitSession, MotionEventSource
from helpers import FakeClock, FakeDriver


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_driver():
    return FakeDriver()


@pytest.fixture
def raw_config():
    """No smoothing, so magnitudes equal the raw sample norm."""
    return GaitConfig(filter_alpha=1.0)


@pytest.fixture
def metrics_log():
    return []


@pytest.fixture
async def running_session(raw_config, clock, metrics_log):
    """A started session fed through a MotionEventSource."""
    source = MotionEventSource(clock=clock)
    session = GaitSession(source, raw_config, on_metrics_updated=metrics_log.append, clock=clock)
    assert await session.request_access()
    session.start()
    return session
