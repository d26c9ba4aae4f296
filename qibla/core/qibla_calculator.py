"""
Qibla calculator: bearing and distance from a position to the Kaaba.
"""

from qibla.models import GeoCoordinate, KAABA
from qibla.utils.constants import KAABA_LATITUDE, KAABA_LONGITUDE
from qibla.utils.geometry import bearing_to, haversine_distance


class QiblaCalculator:
    """
    Calculates the Qibla direction (bearing toward the Kaaba in Mecca).

    Stateless; one instance can be shared between sessions and threads.
    """

    KAABA_LATITUDE = KAABA_LATITUDE
    KAABA_LONGITUDE = KAABA_LONGITUDE

    def calculate_qibla_bearing(self, latitude: float, longitude: float) -> float:
        """
        Calculate the Qibla bearing from a given position.

        Args:
            latitude: User's latitude in decimal degrees
            longitude: User's longitude in decimal degrees

        Returns:
            Bearing in degrees from true north (0 = North, 90 = East,
            180 = South, 270 = West), 0 <= result < 360

        Raises:
            InvalidCoordinateError: If the position is not on Earth
        """
        return bearing_to(GeoCoordinate(latitude, longitude), KAABA)

    def distance_to_kaaba(self, latitude: float, longitude: float) -> float:
        """Great circle distance to the Kaaba in kilometers."""
        return haversine_distance(latitude, longitude, KAABA_LATITUDE, KAABA_LONGITUDE)
