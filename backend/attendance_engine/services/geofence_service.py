"""GPS geofence verification service."""
import math
from dataclasses import dataclass
from typing import Dict

# WGS-84 equatorial radius
EARTH_RADIUS_METERS = 6378137


@dataclass(frozen=True)
class GeofenceResult:
    """Outcome of a geofence check."""
    within_radius: bool
    distance_meters: int
    radius_meters: float

    def to_dict(self) -> Dict:
        return {
            'within_radius': self.within_radius,
            'distance_meters': self.distance_meters,
            'radius_meters': self.radius_meters
        }


class GeofenceService:
    """Great-circle distance and radius checks.

    Distances are compared in whole meters: a point at exactly the radius
    passes, one meter beyond fails. Coordinates are validated by the caller
    (latitude in [-90, 90], longitude in [-180, 180]).
    """

    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate distance between two GPS points in meters."""
        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lon = math.radians(lon2 - lon1)

        a = (math.sin(delta_lat / 2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) *
             math.sin(delta_lon / 2) ** 2)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_METERS * c

    @staticmethod
    def evaluate(point_a: Dict, point_b: Dict, radius_meters: float) -> GeofenceResult:
        """Check whether ``point_a`` lies within ``radius_meters`` of ``point_b``."""
        distance = round(GeofenceService.calculate_distance(
            point_a['latitude'], point_a['longitude'],
            point_b['latitude'], point_b['longitude']
        ))

        return GeofenceResult(
            within_radius=distance <= radius_meters,
            distance_meters=distance,
            radius_meters=radius_meters
        )
