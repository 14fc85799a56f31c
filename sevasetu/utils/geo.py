"""
Geographic helpers: great-circle distance and service-area bounds.
"""

import math
from typing import Optional

from sevasetu.core.settings import settings

EARTH_RADIUS_METERS = 6371000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance in meters between two points using the Haversine formula."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)
    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


class ServiceArea:
    """
    Axis-aligned bounding box of the municipal service area.

    Bounds are inclusive on every edge.
    """

    def __init__(self, min_lat: float, max_lat: float, min_lng: float, max_lng: float):
        self.min_lat = min_lat
        self.max_lat = max_lat
        self.min_lng = min_lng
        self.max_lng = max_lng

    @classmethod
    def from_settings(cls) -> "ServiceArea":
        return cls(
            min_lat=settings.SERVICE_AREA_MIN_LAT,
            max_lat=settings.SERVICE_AREA_MAX_LAT,
            min_lng=settings.SERVICE_AREA_MIN_LNG,
            max_lng=settings.SERVICE_AREA_MAX_LNG,
        )

    def contains(self, lat: Optional[float], lng: Optional[float]) -> bool:
        if lat is None or lng is None:
            return False
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng

    def __repr__(self) -> str:
        return f"ServiceArea(lat={self.min_lat}..{self.max_lat}, lng={self.min_lng}..{self.max_lng})"
