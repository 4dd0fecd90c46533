"""VeloTrack — core internal data models.

These are plain dataclasses with no framework dependencies.
JSON payloads are converted to/from these at the API boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RideState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


@dataclass(frozen=True)
class RoutePoint:
    """A single GPS fix. Degrees (WGS84), epoch ms, m/s, metres."""
    latitude: float
    longitude: float
    timestamp: int
    speed: float | None = 0.0
    altitude: float | None = None


@dataclass(frozen=True)
class RideStats:
    total_distance: float = 0.0   # metres
    max_speed: float = 0.0        # m/s
    duration: int = 0             # seconds
    start_time: int | None = None  # epoch ms
    elevation_gain: float = 0.0   # metres

    @property
    def avg_speed(self) -> float:
        """Average speed in m/s, always derived from distance and duration."""
        if self.duration > 0:
            return self.total_distance / self.duration
        return 0.0


@dataclass(frozen=True)
class RideSnapshot:
    state: RideState
    stats: RideStats
    route: tuple[RoutePoint, ...] = ()

    @property
    def is_recording(self) -> bool:
        return self.state is RideState.RECORDING

    @property
    def current_speed(self) -> float:
        if not self.route:
            return 0.0
        return max(self.route[-1].speed or 0.0, 0.0)


@dataclass(frozen=True)
class AIInsight:
    title: str
    summary: str
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class GroundingLink:
    title: str
    uri: str


@dataclass(frozen=True)
class NearbyStops:
    text: str
    links: list[GroundingLink] = field(default_factory=list)
