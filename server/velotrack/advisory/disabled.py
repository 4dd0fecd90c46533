"""Advisory client used when no backend is configured."""

from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

from velotrack.errors import AdvisoryNotConfiguredError

if TYPE_CHECKING:
    from velotrack.core.models import AIInsight, NearbyStops, RideStats, RoutePoint


class DisabledAdvisoryClient:
    """AdvisoryClient that refuses every request."""

    def __init__(self, reason: str = "advisory backend is disabled") -> None:
        self._reason = reason

    async def analyze_ride(self, stats: RideStats, route: Sequence[RoutePoint]) -> AIInsight:
        raise AdvisoryNotConfiguredError(self._reason)

    async def find_nearby_stops(self, latitude: float, longitude: float) -> NearbyStops:
        raise AdvisoryNotConfiguredError(self._reason)
