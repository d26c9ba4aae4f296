"""
Geometry utilities for Qibla bearings, angle reduction, and display rotation.

Every function here is pure: no state, no I/O, and no failure for finite input.
The Earth is treated as a perfect sphere.
"""

import math

from qibla.models import GeoCoordinate, KAABA
from qibla.utils.constants import (
    DEFAULT_ALIGNMENT_TOLERANCE,
    EARTH_RADIUS_KM,
    FULL_CIRCLE,
)


def reduce_angle(angle: float) -> float:
    """
    Reduce any angle in degrees onto the canonical range [0, 360).

    The modulo is applied twice so the result never depends on the sign
    convention of the underlying modulo operation. The second step also folds
    the rare case where the first one rounds a tiny negative angle up to
    exactly 360.

    Args:
        angle: Angle in degrees, any finite value (negative or multi-turn)

    Returns:
        Equivalent angle in degrees, 0 <= result < 360
    """
    return ((angle % FULL_CIRCLE) + FULL_CIRCLE) % FULL_CIRCLE


def bearing_between(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the initial great-circle bearing from point 1 to point 2.

    Args:
        lat1: Latitude of origin point in degrees
        lon1: Longitude of origin point in degrees
        lat2: Latitude of destination point in degrees
        lon2: Longitude of destination point in degrees

    Returns:
        Bearing in degrees clockwise from true north, 0 <= result < 360
    """
    # Convert degrees to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    # Longitude difference; only its sin/cos are used, so no wrapping needed
    dlon = math.radians(lon2 - lon1)

    # Forward azimuth (multiplication and atan2 only, no division)
    y = math.sin(dlon) * math.cos(lat2_rad)
    x = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlon))

    bearing = math.degrees(math.atan2(y, x))
    return reduce_angle(bearing)


def bearing_to(observer: GeoCoordinate, target: GeoCoordinate = KAABA) -> float:
    """
    Calculate the initial great-circle bearing from an observer to a target.

    When observer and target coincide the bearing is undefined; a value in
    [0, 360) is still returned (0.0, since atan2(0, 0) == 0).

    Args:
        observer: Observer position
        target: Target position, the Kaaba by default

    Returns:
        Bearing in degrees clockwise from true north, 0 <= result < 360
    """
    return bearing_between(
        observer.latitude,
        observer.longitude,
        target.latitude,
        target.longitude,
    )


def rotation_angle(heading: float, bearing: float) -> float:
    """
    Calculate how far to rotate the Qibla indicator for a device heading.

    Args:
        heading: Device heading in degrees, not necessarily normalized
        bearing: Qibla bearing in degrees from true north

    Returns:
        Rotation angle in degrees, 0 <= result < 360
    """
    return reduce_angle(heading - bearing)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    # Rounding can push a past 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def angular_difference(angle1: float, angle2: float) -> float:
    """
    Smallest absolute difference between two angles, in [0, 180].
    """
    return abs((reduce_angle(angle1 - angle2) + 180) % FULL_CIRCLE - 180)


def is_aligned(rotation: float, tolerance: float = DEFAULT_ALIGNMENT_TOLERANCE) -> bool:
    """
    Determine if a rotation angle means the device is facing the Qibla.

    Args:
        rotation: Display rotation angle in degrees
        tolerance: Maximum deviation from straight ahead, in degrees

    Returns:
        True if the indicator points within tolerance of straight ahead
    """
    return angular_difference(rotation, 0.0) <= tolerance
