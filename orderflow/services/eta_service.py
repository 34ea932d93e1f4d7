"""
Delivery ETA estimate.

Great-circle distance from the fulfillment origin to the destination at a
constant average speed, plus a fixed handling buffer, rounded up to whole
minutes. The figure is a creation-time commitment stored on the order and
is never recomputed.
"""

import math
from typing import Optional, Tuple

from orderflow.config import settings


EARTH_RADIUS_KM = 6371


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """Calculate distance between two points in km."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


class ETACalculator:
    """Estimates delivery minutes from a fixed origin."""

    def __init__(
        self,
        origin: Optional[Tuple[float, float]] = None,
        speed_kmh: Optional[float] = None,
        buffer_minutes: Optional[int] = None,
    ):
        self.origin = origin or (settings.FULFILLMENT_ORIGIN_LAT, settings.FULFILLMENT_ORIGIN_LNG)
        self.speed_kmh = speed_kmh or settings.AVERAGE_SPEED_KMH
        self.buffer_minutes = settings.HANDLING_BUFFER_MINUTES if buffer_minutes is None else buffer_minutes

        if self.speed_kmh <= 0:
            raise ValueError("Average speed must be positive")

    def distance_km(self, latitude: float, longitude: float) -> float:
        return haversine_distance(self.origin[0], self.origin[1], latitude, longitude)

    def estimate_minutes(self, latitude: float, longitude: float) -> int:
        """Travel time rounded up, plus the handling buffer."""
        travel_minutes = self.distance_km(latitude, longitude) / self.speed_kmh * 60
        return math.ceil(travel_minutes) + self.buffer_minutes
