"""Health check and monitoring endpoints."""

from __future__ import annotations

import json
from pathlib import Path

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")

# Load build info once at import time.
_BUILD_INFO_PATH = Path(__file__).parent.parent / "build_info.json"
_BUILD_INFO: dict = {}
if _BUILD_INFO_PATH.exists():
    try:
        _BUILD_INFO = json.loads(_BUILD_INFO_PATH.read_text())
    except (json.JSONDecodeError, OSError):
        pass


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from velotrack.main import get_session

    session = get_session()
    snap = session.snapshot()
    result = {
        "status": "ok",
        "version": "0.1.0",
        "ride_state": snap.state.value,
        "route_points": len(snap.route),
        "fix_errors": session.fix_errors,
    }
    result.update(_BUILD_INFO)
    return result


@router.get("/config")
async def get_client_config() -> dict:
    """Configuration endpoint for the rider app.

    The app calls this on startup to get server-controlled parameters.
    """
    from velotrack.main import get_config

    config = get_config()
    return {
        "heartbeat_interval_seconds": config.ride.heartbeat_interval_seconds,
        "min_points_for_analysis": config.ride.min_points_for_analysis,
        "route_sample_every": config.ride.route_sample_every,
        "advisory_enabled": config.advisory.backend != "none",
    }
