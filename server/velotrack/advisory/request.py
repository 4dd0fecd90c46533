"""Advisory request payloads.

The route sampling and rounding here are part of the prompt format the
advisory service expects; keep them stable.
"""

from __future__ import annotations

import json
from typing import Sequence

from velotrack.core.geo import mps_to_kmh
from velotrack.core.models import RideStats, RoutePoint

# Send every Nth route point.
ROUTE_SAMPLE_EVERY = 5

# The service answers with exactly this many recommendations.
RECOMMENDATION_COUNT = 3

# Fewer points than this are rejected before any external call.
MIN_POINTS_FOR_ANALYSIS = 5


def sample_route(route: Sequence[RoutePoint], every: int = ROUTE_SAMPLE_EVERY) -> list[dict]:
    """Condense the route: every Nth fix, 4 dp coordinates, speed in km/h (1 dp)."""
    return [
        {
            "lat": f"{p.latitude:.4f}",
            "lon": f"{p.longitude:.4f}",
            "spd": f"{mps_to_kmh(p.speed or 0.0):.1f}",
        }
        for i, p in enumerate(route)
        if i % every == 0
    ]


def summarize_stats(stats: RideStats) -> dict:
    """Ride totals in display units, formatted as sent to the service."""
    return {
        "distance_km": f"{stats.total_distance / 1000:.2f}",
        "avg_speed_kmh": f"{mps_to_kmh(stats.avg_speed):.1f}",
        "max_speed_kmh": f"{mps_to_kmh(stats.max_speed):.1f}",
        "duration_min": f"{stats.duration / 60:.1f}",
        "elevation_gain_m": f"{stats.elevation_gain:.1f}",
    }


def build_ride_prompt(stats: RideStats, route: Sequence[RoutePoint],
                      every: int = ROUTE_SAMPLE_EVERY) -> str:
    s = summarize_stats(stats)
    sampled = json.dumps(sample_route(route, every), separators=(",", ":"))
    return (
        "Analyze this bike ride and provide professional coaching feedback.\n"
        "  Stats:\n"
        f"  - Distance: {s['distance_km']} km\n"
        f"  - Avg Speed: {s['avg_speed_kmh']} km/h\n"
        f"  - Max Speed: {s['max_speed_kmh']} km/h\n"
        f"  - Duration: {s['duration_min']} minutes\n"
        f"  - Elevation Gain: {s['elevation_gain_m']} m\n"
        "\n"
        f"  Route Points (lat, lon, speed km/h): {sampled}\n"
        "\n"
        "  Provide a professional summary, a catchy title for the ride, "
        "and 3 specific recommendations for improvement."
    )


def build_nearby_prompt(latitude: float, longitude: float) -> str:
    return (
        "Find high-rated cafes, bike shops, or scenic viewpoints near "
        f"latitude {latitude}, longitude {longitude}. "
        "Suggest 3 places for a cyclist to stop."
    )


# JSON schema the service must answer ride analyses with.
INSIGHT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "summary": {"type": "STRING"},
        "recommendations": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "minItems": RECOMMENDATION_COUNT,
            "maxItems": RECOMMENDATION_COUNT,
        },
    },
    "required": ["title", "summary", "recommendations"],
}
