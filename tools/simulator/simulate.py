#!/usr/bin/env python3
"""VeloTrack ride simulator.

Rides a simulated bike around a start point and streams noisy GPS fixes to
the server, the way the rider's phone would.

Usage:
    # 10 minute ride around Lyon, one fix per second
    python -m tools.simulator.simulate --server http://localhost:8000 --duration 600

    # Short ride, then ask for AI feedback
    python -m tools.simulator.simulate --duration 60 --analyze

    # Flaky GPS: 10% of reads fail, 20% have no altitude
    python -m tools.simulator.simulate --fix-error-rate 0.1 --missing-altitude-rate 0.2
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
from dataclasses import dataclass

import httpx


@dataclass
class SimRider:
    lat: float
    lon: float
    altitude: float
    bearing: float
    speed_mps: float
    fixes_sent: int = 0
    fix_errors_sent: int = 0
    errors: int = 0


def move_rider(rider: SimRider, dt_seconds: float) -> None:
    """Move the rider along its current bearing, with gentle turns and hills."""
    rider.bearing = (rider.bearing + random.uniform(-10, 10)) % 360

    # Road cycling: 4-14 m/s
    rider.speed_mps = max(4.0, min(14.0, rider.speed_mps + random.uniform(-0.8, 0.8)))

    # Rolling terrain
    rider.altitude = max(0.0, rider.altitude + random.uniform(-1.5, 1.6))

    distance_m = rider.speed_mps * dt_seconds
    bearing_rad = math.radians(rider.bearing)

    # Approximate: 1 degree latitude ~ 111,000 m
    dlat = (distance_m * math.cos(bearing_rad)) / 111_000
    dlon = (distance_m * math.sin(bearing_rad)) / (111_000 * math.cos(math.radians(rider.lat)))

    rider.lat += dlat
    rider.lon += dlon


def make_fix_payload(rider: SimRider, timestamp_ms: int, missing_altitude_rate: float) -> dict:
    """Create a single fix JSON payload with GPS-like noise."""
    altitude = None
    if random.random() >= missing_altitude_rate:
        altitude = round(rider.altitude + random.gauss(0, 0.5), 1)
    return {
        "latitude": round(rider.lat + random.gauss(0, 0.00001), 7),
        "longitude": round(rider.lon + random.gauss(0, 0.00001), 7),
        "timestamp": timestamp_ms,
        "speed": round(max(0.0, rider.speed_mps + random.gauss(0, 0.3)), 2),
        "altitude": altitude,
    }


async def post_json(client: httpx.AsyncClient, url: str, payload: dict | None = None) -> httpx.Response:
    return await client.post(
        url,
        content=json.dumps(payload or {}),
        headers={"content-type": "application/json"},
    )


async def run_ride(client: httpx.AsyncClient, rider: SimRider, args: argparse.Namespace) -> None:
    """Stream fixes for the whole ride duration."""
    interval = 1.0 / args.fixes_per_second
    end_time = time.monotonic() + args.duration
    url = f"{args.server}/api/v1/ride/positions"

    while time.monotonic() < end_time:
        move_rider(rider, interval)

        if random.random() < args.fix_error_rate:
            payload = {"error": {"code": 3, "message": "position acquisition timed out"}}
            rider.fix_errors_sent += 1
        else:
            payload = make_fix_payload(rider, int(time.time() * 1000),
                                       args.missing_altitude_rate)

        try:
            resp = await post_json(client, url, payload)
            if resp.status_code == 200:
                rider.fixes_sent += 1
            else:
                rider.errors += 1
        except httpx.RequestError:
            rider.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    center_lat, center_lon = args.center
    rider = SimRider(
        lat=center_lat,
        lon=center_lon,
        altitude=args.start_altitude,
        bearing=random.uniform(0, 360),
        speed_mps=random.uniform(6, 10),
    )

    print(f"Starting ride simulation: {args.fixes_per_second} fixes/sec")
    print(f"  Start: {center_lat:.4f}, {center_lon:.4f}")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()

    async with httpx.AsyncClient(timeout=10.0) as client:
        resp = await post_json(client, f"{args.server}/api/v1/ride/start")
        if resp.status_code != 200:
            print(f"Could not start ride: HTTP {resp.status_code} {resp.text}")
            return

        await run_ride(client, rider, args)

        resp = await post_json(client, f"{args.server}/api/v1/ride/stop")
        ride = resp.json()

        elapsed = time.monotonic() - start
        print(f"\nRide complete in {elapsed:.1f}s")
        print(f"  Fixes sent: {rider.fixes_sent} ({rider.fix_errors_sent} fix errors)")
        print(f"  Request errors: {rider.errors}")
        display = ride.get("display", {})
        print(f"  Distance: {display.get('distance_km')} km")
        print(f"  Avg speed: {display.get('avg_speed_kmh')} km/h")
        print(f"  Duration: {display.get('duration')}")
        print(f"  Elevation gain: {ride.get('stats', {}).get('elevation_gain', 0):.1f} m")

        if args.analyze:
            resp = await post_json(client, f"{args.server}/api/v1/ride/analysis")
            if resp.status_code == 200:
                insight = resp.json()
                print(f"\n{insight['title']}")
                print(f"  {insight['summary']}")
                for i, rec in enumerate(insight["recommendations"], 1):
                    print(f"  {i}. {rec}")
            else:
                print(f"\nAnalysis unavailable: HTTP {resp.status_code} {resp.json().get('error')}")


def main():
    parser = argparse.ArgumentParser(description="VeloTrack ride simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--duration", type=int, default=60, help="Ride duration in seconds")
    parser.add_argument("--fixes-per-second", type=float, default=1.0, help="GPS fix rate")
    parser.add_argument("--center", type=str, default="45.764,4.835",
                        help="Start lat,lon (default: Lyon)")
    parser.add_argument("--start-altitude", type=float, default=170.0, help="Start altitude in m")
    parser.add_argument("--fix-error-rate", type=float, default=0.02,
                        help="Fraction of reads reported as failed")
    parser.add_argument("--missing-altitude-rate", type=float, default=0.05,
                        help="Fraction of fixes without altitude")
    parser.add_argument("--analyze", action="store_true",
                        help="Request AI feedback after the ride")

    args = parser.parse_args()

    # Parse center
    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
