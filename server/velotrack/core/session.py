"""Ride session — wires a position source and the heartbeat into the aggregator.

This is the only place that knows about event delivery. The aggregator
itself stays synchronous and is fed one call at a time from the event loop.
"""

from __future__ import annotations

import asyncio
from typing import Callable, TYPE_CHECKING

import structlog

from velotrack.advisory.request import MIN_POINTS_FOR_ANALYSIS
from velotrack.errors import (
    AdvisoryServiceError,
    InsufficientRideDataError,
    PositionFixError,
    PositionSourceUnavailableError,
    RideNotRecordingError,
)
from velotrack.source.asyncio_source import AsyncioPositionSource

if TYPE_CHECKING:
    from velotrack.advisory.base import AdvisoryClient
    from velotrack.core.aggregator import RideAggregator
    from velotrack.core.models import AIInsight, NearbyStops, RideSnapshot
    from velotrack.source.base import PositionEvent, PositionSource

log = structlog.get_logger()


class RideSession:
    """One live ride at a time: subscriptions, heartbeat and advisory calls."""

    def __init__(
        self,
        aggregator: RideAggregator,
        advisor: AdvisoryClient,
        *,
        source_factory: Callable[[], PositionSource] = AsyncioPositionSource,
        heartbeat_interval: float = 1.0,
        min_points_for_analysis: int = MIN_POINTS_FOR_ANALYSIS,
    ) -> None:
        self._aggregator = aggregator
        self._advisor = advisor
        self._source_factory = source_factory
        self._heartbeat_interval = heartbeat_interval
        self._min_points = min_points_for_analysis

        self._source: PositionSource | None = None
        self._lock = asyncio.Lock()
        self._consumer_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None

        self.fix_errors: int = 0
        self.last_insight: AIInsight | None = None
        self.nearby_stops: NearbyStops | None = None

    @property
    def aggregator(self) -> RideAggregator:
        return self._aggregator

    def snapshot(self) -> RideSnapshot:
        return self._aggregator.snapshot()

    async def start(self) -> RideSnapshot:
        """Start (or restart) a ride. Fails if no position source is available."""
        source = self._source_factory()
        if not source.available:
            log.warning("position_source_unavailable")
            raise PositionSourceUnavailableError("geolocation is not available")

        async with self._lock:
            if self._aggregator.is_recording or self._source is not None:
                await self._stop_locked()

            snap = self._aggregator.start()
            self.fix_errors = 0
            self.last_insight = None
            self.nearby_stops = None

            self._source = source
            self._consumer_task = asyncio.create_task(self._consume(source))
            self._heartbeat_task = asyncio.create_task(self._heartbeat())
            return snap

    async def stop(self) -> RideSnapshot:
        """Stop the ride. Events still queued are drained as no-ops."""
        async with self._lock:
            return await self._stop_locked()

    async def _stop_locked(self) -> RideSnapshot:
        """Freeze the ride and release its subscriptions. Caller holds lock."""
        snap = self._aggregator.stop()

        source, self._source = self._source, None
        heartbeat, self._heartbeat_task = self._heartbeat_task, None
        consumer, self._consumer_task = self._consumer_task, None

        if heartbeat is not None:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass
        if source is not None:
            source.close()
        if consumer is not None:
            await consumer
        return snap

    def push(self, event: PositionEvent) -> None:
        """Hand one fix (or fix error) to the active source."""
        if self._source is None or not self._aggregator.is_recording:
            raise RideNotRecordingError("no ride is recording")
        self._source.push(event)

    async def flush(self) -> None:
        """Wait until every event pushed so far has been consumed."""
        source = self._source
        while source is not None and source.qsize() and not source.closed:
            await asyncio.sleep(0)

    async def _consume(self, source: PositionSource) -> None:
        async for event in source.events():
            if isinstance(event, PositionFixError):
                self.fix_errors += 1
                log.warning("position_fix_error", code=event.code, error=str(event))
                continue
            self._aggregator.ingest(event)

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            if not self._aggregator.tick():
                return

    async def analyze(self) -> AIInsight:
        """Ask the advisory service about the current (usually finished) ride."""
        snap = self._aggregator.snapshot()
        if len(snap.route) < self._min_points:
            raise InsufficientRideDataError(
                f"need at least {self._min_points} route points, have {len(snap.route)}"
            )
        try:
            insight = await self._advisor.analyze_ride(snap.stats, snap.route)
        except AdvisoryServiceError:
            log.warning("ride_analysis_failed", points=len(snap.route))
            raise
        self.last_insight = insight
        return insight

    async def find_nearby(self) -> NearbyStops:
        """Suggest places to stop near the last recorded fix."""
        snap = self._aggregator.snapshot()
        if not snap.route:
            raise InsufficientRideDataError("no position recorded yet")
        last = snap.route[-1]
        try:
            stops = await self._advisor.find_nearby_stops(last.latitude, last.longitude)
        except AdvisoryServiceError:
            log.warning("nearby_stops_failed")
            raise
        self.nearby_stops = stops
        return stops
