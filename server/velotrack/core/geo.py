"""Geo math and display helpers. No framework dependencies."""

from __future__ import annotations

import math

# Earth radius in meters (for Haversine).
EARTH_RADIUS_M = 6_371_000.0

# m/s -> km/h
_KMH_PER_MPS = 3.6


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two points given in degrees.

    Identical points return exactly 0.0. The haversine term is clamped to
    [0, 1] so rounding near antipodal points cannot leave the domain of asin.
    """
    if lat1 == lat2 and lon1 == lon2:
        return 0.0
    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    a = min(max(a, 0.0), 1.0)
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def mps_to_kmh(speed_mps: float) -> float:
    return speed_mps * _KMH_PER_MPS


def format_duration(seconds: int) -> str:
    """Render elapsed seconds as ``H:MM:SS``, ``M:SS`` or ``SS``.

    Leading zero components are dropped; the seconds field is always two
    digits and minutes are padded only when hours are shown.

    >>> format_duration(3661), format_duration(61), format_duration(9)
    ('1:01:01', '1:01', '09')
    """
    seconds = max(int(seconds), 0)
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h}:{m:02d}:{s:02d}"
    if m:
        return f"{m}:{s:02d}"
    return f"{s:02d}"
