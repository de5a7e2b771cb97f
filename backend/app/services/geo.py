import math
from typing import Optional

EARTH_RADIUS_M = 6371000.0
MIN_GEOFENCE_RADIUS_M = 50
MAX_GEOFENCE_RADIUS_M = 500
DEFAULT_GEOFENCE_RADIUS_M = 100


def haversine_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres between two WGS84 points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def has_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """(0, 0) is what failed geocodes used to store, so it counts as missing."""
    if latitude is None or longitude is None:
        return False
    return not (float(latitude) == 0 and float(longitude) == 0)


def validate_coordinates(latitude, longitude):
    """Coerce and range-check a coordinate pair; raises ValueError."""
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise ValueError('latitude and longitude must be numbers')
    if not -90 <= lat <= 90:
        raise ValueError('latitude must be between -90 and 90')
    if not -180 <= lng <= 180:
        raise ValueError('longitude must be between -180 and 180')
    return lat, lng


def validate_geofence_radius(radius) -> int:
    if radius is None or radius == '':
        return DEFAULT_GEOFENCE_RADIUS_M
    try:
        value = int(radius)
    except (TypeError, ValueError):
        raise ValueError('geofence_radius must be an integer')
    if not MIN_GEOFENCE_RADIUS_M <= value <= MAX_GEOFENCE_RADIUS_M:
        raise ValueError(
            f'geofence_radius must be between {MIN_GEOFENCE_RADIUS_M} and {MAX_GEOFENCE_RADIUS_M} metres'
        )
    return value


def check_geofence(job, latitude: float, longitude: float):
    """
    Check whether a position is inside a job's geofence.

    Returns:
        Tuple of (inside, distance_m). Jobs without coordinates never admit.
    """
    if not has_coordinates(job.latitude, job.longitude):
        return False, None
    distance = haversine_distance_m(float(job.latitude), float(job.longitude), latitude, longitude)
    radius = job.geofence_radius or DEFAULT_GEOFENCE_RADIUS_M
    return distance <= radius, round(distance, 1)
