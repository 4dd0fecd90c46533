"""Ride aggregator — live statistics over a stream of GPS fixes.

Owns the ride lifecycle (idle -> recording -> idle), ingests fixes one at a
time and keeps running distance, speed, elevation and duration figures plus
the raw route. No framework dependencies; the session layer feeds it.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

import structlog

from velotrack.core.geo import haversine_m
from velotrack.core.models import RideSnapshot, RideState, RideStats, RoutePoint

log = structlog.get_logger()


def _is_valid(point: RoutePoint) -> bool:
    """A fix is usable if every numeric field present is finite and the
    coordinates are within +-90 latitude and +-180 longitude."""
    values = [point.latitude, point.longitude, point.timestamp]
    if point.speed is not None:
        values.append(point.speed)
    if point.altitude is not None:
        values.append(point.altitude)
    if not all(math.isfinite(v) for v in values):
        return False
    return -90.0 <= point.latitude <= 90.0 and -180.0 <= point.longitude <= 180.0


class RideAggregator:
    """Thread-safe ride statistics with an explicit state machine.

    Every public method takes the same lock and runs to completion, so a
    fix, a heartbeat tick and a start/stop never interleave. Calls made
    while idle are no-ops: a ride that has been stopped stays frozen until
    the next ``start()``.

    Fixes with NaN/infinite fields are rejected outright (not appended,
    counted in ``rejected_samples``). Latitude outside [-90, 90] or longitude
    outside [-180, 180] is rejected under the same rule.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._lock = threading.Lock()
        self._clock = clock

        self._state = RideState.IDLE
        self._route: list[RoutePoint] = []
        self._prev: RoutePoint | None = None

        # Running totals for the current ride
        self._total_distance = 0.0
        self._max_speed = 0.0
        self._elevation_gain = 0.0
        self._duration = 0
        self._start_time: int | None = None

        self.rejected_samples: int = 0

    @property
    def state(self) -> RideState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RideState.RECORDING

    def start(self, now_ms: int | None = None) -> RideSnapshot:
        """Begin a new ride. Restarting while recording discards the current one."""
        if now_ms is None:
            now_ms = int(self._clock() * 1000)
        with self._lock:
            restarted = self._state is RideState.RECORDING
            self._route = []
            self._prev = None
            self._total_distance = 0.0
            self._max_speed = 0.0
            self._elevation_gain = 0.0
            self._duration = 0
            self._start_time = now_ms
            self.rejected_samples = 0
            self._state = RideState.RECORDING
            snap = self._snapshot_locked()
        log.info("ride_started", start_time=now_ms, restarted=restarted)
        return snap

    def ingest(self, point: RoutePoint) -> bool:
        """Fold one fix into the current ride. Returns True if it was recorded."""
        with self._lock:
            if self._state is not RideState.RECORDING:
                return False
            if not _is_valid(point):
                self.rejected_samples += 1
                log.warning("sample_rejected", latitude=point.latitude,
                            longitude=point.longitude, timestamp=point.timestamp)
                return False

            # The raw route keeps every accepted fix, duplicates included.
            self._route.append(point)

            prev = self._prev
            self._prev = point
            if prev is None:
                return True

            self._total_distance += haversine_m(
                prev.latitude, prev.longitude, point.latitude, point.longitude,
            )

            # Unknown altitude counts as 0 m for the delta.
            elev = (point.altitude or 0.0) - (prev.altitude or 0.0)
            if elev > 0:
                self._elevation_gain += elev

            speed = point.speed or 0.0
            if speed > self._max_speed:
                self._max_speed = speed
            return True

    def tick(self) -> bool:
        """Advance the ride clock by one second."""
        with self._lock:
            if self._state is not RideState.RECORDING:
                return False
            self._duration += 1
            return True

    def stop(self) -> RideSnapshot:
        """Freeze the current ride. A no-op when already idle."""
        with self._lock:
            was_recording = self._state is RideState.RECORDING
            self._state = RideState.IDLE
            self._prev = None
            snap = self._snapshot_locked()
        if was_recording:
            log.info("ride_stopped",
                     points=len(snap.route),
                     distance_m=round(snap.stats.total_distance, 1),
                     duration_s=snap.stats.duration)
        return snap

    def snapshot(self) -> RideSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> RideSnapshot:
        """Build an immutable view of the current ride. Caller holds lock."""
        return RideSnapshot(
            state=self._state,
            stats=RideStats(
                total_distance=self._total_distance,
                max_speed=self._max_speed,
                duration=self._duration,
                start_time=self._start_time,
                elevation_gain=self._elevation_gain,
            ),
            route=tuple(self._route),
        )
