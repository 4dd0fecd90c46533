"""VeloTrack exception hierarchy.

Callers can catch VeloTrackError (broad) or a specific subclass (narrow).
None of these are fatal to the server process.
"""

from __future__ import annotations


class VeloTrackError(RuntimeError):
    """Base class for all VeloTrack runtime errors."""


# ---- Position source ---------------------------

class PositionSourceUnavailableError(VeloTrackError):
    """No geolocation capability; a ride cannot be started."""


class RideNotRecordingError(VeloTrackError):
    """A fix was pushed while no ride is recording."""


class PositionFixError(VeloTrackError):
    """A single failed GPS read. Reported, never stops the ride."""

    def __init__(self, message: str = "position unavailable", code: int = 0) -> None:
        super().__init__(message)
        self.code = code


# ---- Advisory service --------------------------

class AdvisoryError(VeloTrackError):
    """Errors related to the external advisory service."""


class InsufficientRideDataError(AdvisoryError):
    """Not enough route points to ask for advice. No external call is made."""


class AdvisoryNotConfiguredError(AdvisoryError):
    """The advisory backend is disabled or has no API key."""


class AdvisoryServiceError(AdvisoryError):
    """Network, API or response-format failure. Safe to retry."""
