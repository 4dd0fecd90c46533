"""Ride API endpoints.

This is the thin FastAPI adapter. It parses HTTP requests, converts JSON
to internal models, and calls the ride session.
"""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from velotrack.core.geo import format_duration, mps_to_kmh
from velotrack.core.models import AIInsight, NearbyStops, RideSnapshot, RoutePoint
from velotrack.errors import (
    AdvisoryNotConfiguredError,
    AdvisoryServiceError,
    InsufficientRideDataError,
    PositionFixError,
    PositionSourceUnavailableError,
    RideNotRecordingError,
)

router = APIRouter(prefix="/api/v1")


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(content={"accepted": False, "error": message}, status_code=status)


def _parse_json_point(data: dict) -> RoutePoint:
    """Parse a fix from JSON. Missing speed/altitude stay missing."""
    return RoutePoint(
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        timestamp=int(data.get("timestamp", 0)),
        speed=float(data["speed"]) if data.get("speed") is not None else None,
        altitude=float(data["altitude"]) if data.get("altitude") is not None else None,
    )


def _parse_fix_code(value) -> int:
    """Numeric fix error code, 0 when the device sends something else."""
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def _point_to_json(p: RoutePoint) -> dict:
    return {
        "latitude": p.latitude,
        "longitude": p.longitude,
        "timestamp": p.timestamp,
        "speed": p.speed,
        "altitude": p.altitude,
    }


def _snapshot_to_json(snap: RideSnapshot, include_route: bool = True) -> dict:
    stats = snap.stats
    result = {
        "state": snap.state.value,
        "stats": {
            "total_distance": stats.total_distance,
            "avg_speed": stats.avg_speed,
            "max_speed": stats.max_speed,
            "duration": stats.duration,
            "start_time": stats.start_time,
            "elevation_gain": stats.elevation_gain,
        },
        "display": {
            "current_speed_kmh": f"{mps_to_kmh(snap.current_speed):.1f}",
            "avg_speed_kmh": f"{mps_to_kmh(stats.avg_speed):.1f}",
            "distance_km": f"{stats.total_distance / 1000:.2f}",
            "duration": format_duration(stats.duration),
        },
        "points": len(snap.route),
    }
    if include_route:
        result["route"] = [_point_to_json(p) for p in snap.route]
    return result


def _insight_to_json(insight: AIInsight) -> dict:
    return {
        "title": insight.title,
        "summary": insight.summary,
        "recommendations": list(insight.recommendations),
    }


def _stops_to_json(stops: NearbyStops) -> dict:
    return {
        "text": stops.text,
        "links": [{"title": link.title, "uri": link.uri} for link in stops.links],
    }


@router.post("/ride/start")
async def start_ride() -> JSONResponse:
    """Start a new ride, discarding any ride currently recording."""
    from velotrack.main import get_session

    try:
        snap = await get_session().start()
    except PositionSourceUnavailableError as exc:
        return _error(503, str(exc))
    return JSONResponse(content=_snapshot_to_json(snap))


@router.post("/ride/stop")
async def stop_ride() -> JSONResponse:
    from velotrack.main import get_session

    snap = await get_session().stop()
    return JSONResponse(content=_snapshot_to_json(snap))


@router.get("/ride")
async def get_ride(
    include_route: bool = Query(default=True),
) -> JSONResponse:
    """Current ride snapshot, with display-ready values."""
    from velotrack.main import get_session

    session = get_session()
    result = _snapshot_to_json(session.snapshot(), include_route=include_route)
    result["fix_errors"] = session.fix_errors
    result["rejected_samples"] = session.aggregator.rejected_samples
    if session.last_insight is not None:
        result["insight"] = _insight_to_json(session.last_insight)
    return JSONResponse(content=result)


@router.post("/ride/positions")
async def receive_position(request: Request) -> JSONResponse:
    """Receive one fix from the rider's device.

    Accepts either a fix ``{"latitude", "longitude", "timestamp", "speed",
    "altitude"}`` or a failed read ``{"error": {"code", "message"}}``.
    """
    from velotrack.main import get_session

    session = get_session()
    body_bytes = await request.body()

    try:
        body = json.loads(body_bytes)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid JSON")
    if not isinstance(body, dict):
        return _error(400, "expected a JSON object")

    if "error" in body:
        err = body["error"]
        if not isinstance(err, dict):
            err = {"message": str(err)}
        event = PositionFixError(
            message=str(err.get("message", "position unavailable")),
            code=_parse_fix_code(err.get("code")),
        )
    else:
        try:
            event = _parse_json_point(body)
        except (KeyError, TypeError, ValueError, OverflowError):
            return _error(422, "latitude and longitude are required numbers")

    try:
        session.push(event)
    except RideNotRecordingError as exc:
        return _error(409, str(exc))
    except asyncio.QueueFull:
        return _error(429, "position queue is full")

    return JSONResponse(content={"accepted": True, "error": ""})


@router.post("/ride/analysis")
async def analyze_ride() -> JSONResponse:
    """Ask the advisory service for feedback on the current ride. Retryable."""
    from velotrack.main import get_session

    try:
        insight = await get_session().analyze()
    except InsufficientRideDataError as exc:
        return _error(422, str(exc))
    except AdvisoryNotConfiguredError as exc:
        return _error(503, str(exc))
    except AdvisoryServiceError as exc:
        return _error(502, str(exc))
    return JSONResponse(content=_insight_to_json(insight))


@router.post("/ride/nearby")
async def nearby_stops() -> JSONResponse:
    """Suggest cafes, bike shops and viewpoints near the last fix."""
    from velotrack.main import get_session

    try:
        stops = await get_session().find_nearby()
    except InsufficientRideDataError as exc:
        return _error(422, str(exc))
    except AdvisoryNotConfiguredError as exc:
        return _error(503, str(exc))
    except AdvisoryServiceError as exc:
        return _error(502, str(exc))
    return JSONResponse(content=_stops_to_json(stops))
