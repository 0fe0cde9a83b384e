import pytest

from health.monitor import ServiceHealthMonitor
from health.schemas import Dependency

from fakes import FakeSession, FakeResponse, ManualClock, MemoryStore

ENDPOINTS = {
    Dependency.AI_SERVER: "http://ai.test",
    Dependency.OCR_SERVER: "http://ocr.test",
}


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def probe_session():
    """Probe session answering every health check with 200."""
    return FakeSession(FakeResponse(200))


@pytest.fixture
def monitor(probe_session, store, clock):
    return ServiceHealthMonitor(ENDPOINTS, store=store, session=probe_session, clock=clock)


@pytest.fixture
def make_monitor(store, clock):
    """Build a monitor whose probes replay the given responses."""
    def _make(*responses, **kwargs):
        session = FakeSession(*responses)
        kwargs.setdefault("store", store)
        kwargs.setdefault("clock", clock)
        return ServiceHealthMonitor(ENDPOINTS, session=session, **kwargs)
    return _make
