"""
Data models for the Qibla compass.
"""

import math
from dataclasses import dataclass
from typing import Dict, Any

from qibla.utils.constants import KAABA_LATITUDE, KAABA_LONGITUDE


class InvalidCoordinateError(ValueError):
    """Raised when a coordinate cannot describe a point on Earth."""
    pass


@dataclass(frozen=True)
class GeoCoordinate:
    """
    Point on the Earth's surface in decimal degrees (spherical model).

    Latitude must lie in [-90, 90]. Longitude only has to be finite: values
    outside [-180, 180] are kept as given, since bearings only use
    trigonometric functions of the longitude difference.
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        for name in ('latitude', 'longitude'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidCoordinateError(f"{name} must be numeric")
            try:
                finite = math.isfinite(float(value))
            except OverflowError:
                finite = False
            if not finite:
                raise InvalidCoordinateError(f"{name} must be finite")

        if not -90 <= self.latitude <= 90:
            raise InvalidCoordinateError("latitude must be between -90 and 90")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'lat': self.latitude,
            'lon': self.longitude,
        }


# The fixed target every bearing points at
KAABA = GeoCoordinate(KAABA_LATITUDE, KAABA_LONGITUDE)


@dataclass
class QiblaReading:
    """Display state computed from one heading sample."""
    heading: float
    bearing: float
    angle: float
    aligned: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'heading': self.heading,
            'bearing': self.bearing,
            'angle': self.angle,
            'aligned': self.aligned,
        }
