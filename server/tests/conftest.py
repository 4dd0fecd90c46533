"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import velotrack.main as main_module
from velotrack.config import AppConfig
from velotrack.core.models import AIInsight, GroundingLink, NearbyStops
from velotrack.errors import AdvisoryServiceError
from velotrack.main import build_session


class FakeAdvisor:
    """AdvisoryClient that records calls and returns canned answers."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail = False

    async def analyze_ride(self, stats, route):
        self.calls.append(("analyze", stats, tuple(route)))
        if self.fail:
            raise AdvisoryServiceError("service down")
        return AIInsight(
            title="Morning Spin",
            summary="Steady effort.",
            recommendations=("Eat", "Drink", "Rest"),
        )

    async def find_nearby_stops(self, latitude, longitude):
        self.calls.append(("nearby", latitude, longitude))
        if self.fail:
            raise AdvisoryServiceError("service down")
        return NearbyStops(
            text="Try the corner cafe.",
            links=[GroundingLink(title="Corner Cafe", uri="https://example.com/cafe")],
        )


@pytest.fixture
def advisor():
    return FakeAdvisor()


@pytest.fixture(autouse=True)
def _init_server(advisor):
    """Initialize server singletons for every test."""
    config = AppConfig()
    config.logging.level = "warning"
    config.ride.heartbeat_interval_seconds = 3600.0

    session = build_session(config, advisor=advisor)

    # Patch module-level singletons
    main_module._config = config
    main_module._session = session

    yield session

    # Cleanup
    main_module._config = None
    main_module._session = None


@pytest.fixture
def session(_init_server):
    return _init_server


@pytest.fixture
async def client(session):
    from velotrack.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    if session.aggregator.is_recording:
        await session.stop()
