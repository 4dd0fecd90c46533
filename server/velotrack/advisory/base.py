"""Advisory service interface (port) for AI ride feedback."""

from __future__ import annotations

from typing import Protocol, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from velotrack.core.models import AIInsight, NearbyStops, RideStats, RoutePoint


class AdvisoryClient(Protocol):
    """Port: turns a ride summary into qualitative feedback."""

    async def analyze_ride(self, stats: RideStats, route: Sequence[RoutePoint]) -> AIInsight: ...

    async def find_nearby_stops(self, latitude: float, longitude: float) -> NearbyStops: ...
