"""Tests for RideAggregator: lifecycle and running statistics."""

from __future__ import annotations

import math

import pytest

from velotrack.core.aggregator import RideAggregator
from velotrack.core.geo import haversine_m
from velotrack.core.models import RideState, RoutePoint


def _point(lat=0.0, lon=0.0, ts=0, speed=0.0, alt=None) -> RoutePoint:
    return RoutePoint(latitude=lat, longitude=lon, timestamp=ts, speed=speed, altitude=alt)


@pytest.fixture
def agg():
    a = RideAggregator(clock=lambda: 1_700_000_000.0)
    a.start()
    return a


def test_initial_state_is_idle():
    a = RideAggregator()
    snap = a.snapshot()
    assert snap.state is RideState.IDLE
    assert snap.route == ()
    assert snap.stats.start_time is None
    assert snap.stats.avg_speed == 0.0


def test_start_stamps_start_time(agg):
    snap = agg.snapshot()
    assert snap.state is RideState.RECORDING
    assert snap.stats.start_time == 1_700_000_000_000
    assert snap.stats.total_distance == 0.0


def test_first_point_has_no_delta(agg):
    assert agg.ingest(_point(lat=1.0, lon=1.0, speed=9.0, alt=50.0))
    snap = agg.snapshot()
    assert len(snap.route) == 1
    assert snap.stats.total_distance == 0.0
    assert snap.stats.elevation_gain == 0.0


def test_distance_is_sum_of_consecutive_segments(agg):
    coords = [(45.0, 4.0), (45.001, 4.0), (45.001, 4.002), (45.0005, 4.003), (45.0005, 4.003)]
    previous_total = 0.0
    for i, (lat, lon) in enumerate(coords):
        agg.ingest(_point(lat=lat, lon=lon, ts=i * 1000))
        total = agg.snapshot().stats.total_distance
        assert total >= previous_total
        previous_total = total

    expected = sum(haversine_m(*a, *b) for a, b in zip(coords, coords[1:]))
    assert agg.snapshot().stats.total_distance == pytest.approx(expected)


def test_duplicate_fix_adds_nothing(agg):
    agg.ingest(_point(lat=1.0, lon=1.0))
    agg.ingest(_point(lat=1.0, lon=1.0))
    snap = agg.snapshot()
    assert len(snap.route) == 2
    assert snap.stats.total_distance == 0.0


def test_elevation_gain_discards_descents(agg):
    for i, alt in enumerate([100, 95, 110, 108, 130]):
        agg.ingest(_point(lon=i * 0.0001, alt=float(alt)))
    assert agg.snapshot().stats.elevation_gain == pytest.approx(37.0)


def test_missing_altitude_counts_as_zero(agg):
    agg.ingest(_point(alt=None))
    agg.ingest(_point(lon=0.0001, alt=12.0))
    agg.ingest(_point(lon=0.0002, alt=None))
    agg.ingest(_point(lon=0.0003, alt=5.0))
    assert agg.snapshot().stats.elevation_gain == pytest.approx(17.0)


def test_max_speed(agg):
    for i, spd in enumerate([2.0, 5.5, 3.0, 7.1]):
        agg.ingest(_point(lon=i * 0.0001, speed=spd))
    assert agg.snapshot().stats.max_speed == pytest.approx(7.1)


def test_missing_or_negative_speed_is_zero(agg):
    agg.ingest(_point(speed=None))
    agg.ingest(_point(lon=0.0001, speed=None))
    agg.ingest(_point(lon=0.0002, speed=-3.0))
    snap = agg.snapshot()
    assert snap.stats.max_speed == 0.0
    assert snap.current_speed == 0.0


def test_tick_advances_duration_only_while_recording():
    a = RideAggregator()
    assert not a.tick()
    a.start()
    for _ in range(5):
        assert a.tick()
    a.stop()
    assert not a.tick()
    assert a.snapshot().stats.duration == 5


def test_avg_speed_is_derived_from_totals(agg):
    for i in range(10):
        agg.ingest(_point(lon=i * 0.0003, speed=3.0))
        agg.tick()
        agg.tick()
        stats = agg.snapshot().stats
        assert stats.avg_speed == stats.total_distance / stats.duration


def test_ingest_while_idle_is_noop():
    a = RideAggregator()
    assert not a.ingest(_point())
    assert a.snapshot().route == ()

    a.start()
    a.ingest(_point(alt=0.0, speed=1.0))
    a.ingest(_point(lon=0.001, alt=10.0, speed=4.0))
    frozen = a.stop()

    assert not a.ingest(_point(lon=0.01, alt=500.0, speed=30.0))
    after = a.snapshot()
    assert after.route == frozen.route
    assert after.stats == frozen.stats
    assert after.state is RideState.IDLE


def test_stop_when_idle_is_noop():
    a = RideAggregator()
    snap = a.stop()
    assert snap.state is RideState.IDLE


def test_restart_resets_everything():
    now = [1000.0]
    a = RideAggregator(clock=lambda: now[0])
    a.start()
    a.ingest(_point(alt=0.0, speed=2.0))
    a.ingest(_point(lon=0.001, alt=10.0, speed=6.0))
    a.tick()

    now[0] = 2000.0
    snap = a.start()
    assert snap.state is RideState.RECORDING
    assert snap.route == ()
    assert snap.stats.total_distance == 0.0
    assert snap.stats.max_speed == 0.0
    assert snap.stats.elevation_gain == 0.0
    assert snap.stats.duration == 0
    assert snap.stats.start_time == 2_000_000

    # The previous ride's last point must not be used as the new origin.
    a.ingest(_point(lat=10.0, lon=10.0))
    assert a.snapshot().stats.total_distance == 0.0


def test_new_ride_after_stop_does_not_reuse_previous_point():
    a = RideAggregator()
    a.start()
    a.ingest(_point())
    a.stop()
    a.start()
    a.ingest(_point(lat=5.0, lon=5.0))
    assert a.snapshot().stats.total_distance == 0.0


@pytest.mark.parametrize("bad", [
    dict(lat=math.nan),
    dict(lon=math.inf),
    dict(speed=math.nan),
    dict(alt=-math.inf),
    dict(lat=91.0),
    dict(lon=-180.5),
])
def test_non_finite_samples_are_rejected(agg, bad):
    agg.ingest(_point(alt=0.0, speed=1.0))
    before = agg.snapshot()

    assert not agg.ingest(_point(**{"lon": 0.001, **bad}))

    after = agg.snapshot()
    assert after.route == before.route
    assert after.stats == before.stats
    assert agg.rejected_samples == 1

    # The retained previous point is unchanged.
    agg.ingest(_point(lon=0.001, alt=0.0))
    assert agg.snapshot().stats.total_distance == pytest.approx(111.19, abs=0.01)


def test_end_to_end_scenario():
    a = RideAggregator()
    a.start()
    a.ingest(_point(lat=0.0, lon=0.0, alt=0.0))
    a.ingest(_point(lat=0.0, lon=0.001, alt=10.0))
    for _ in range(60):
        a.tick()

    stats = a.snapshot().stats
    assert stats.total_distance == pytest.approx(111.19, abs=0.01)
    assert stats.elevation_gain == pytest.approx(10.0)
    assert stats.duration == 60
    assert stats.avg_speed == pytest.approx(1.853, abs=0.001)


def test_snapshot_is_immutable(agg):
    agg.ingest(_point())
    snap = agg.snapshot()
    agg.ingest(_point(lon=0.001))
    assert len(snap.route) == 1
    with pytest.raises(AttributeError):
        snap.stats.total_distance = 5.0
