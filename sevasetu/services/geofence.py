"""
Geofence Validator - physical presence check for field officers.

Pure and deterministic: no I/O, no clock, no store access.
"""

from typing import NamedTuple, Optional

from sevasetu.core.settings import settings
from sevasetu.models.complaint import Coordinates
from sevasetu.utils.geo import haversine_distance


class GeofenceResult(NamedTuple):
    passed: bool
    distance_meters: float


class GeofenceValidator:
    """
    Decides whether an observed officer position is close enough to the
    complaint's target coordinates.

    passed = distance < tolerance (strict), so a position exactly on the
    boundary fails.
    """

    def __init__(self, tolerance_meters: Optional[float] = None):
        self.tolerance_meters = (
            settings.GEOFENCE_TOLERANCE_METERS if tolerance_meters is None else tolerance_meters
        )

    def verify(self, target: Coordinates, observed: Coordinates) -> GeofenceResult:
        distance = haversine_distance(target.lat, target.lng, observed.lat, observed.lng)
        return GeofenceResult(passed=distance < self.tolerance_meters, distance_meters=distance)
