"""
Qibla session module tying position, bearing, and heading together.

A session fetches the position once, caches the Qibla bearing, and then turns
every heading sample into a display reading. The cached bearing is the only
shared state; it is written by initialize() and refresh_position() under a
lock and only read everywhere else.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from qibla.core.compass_service import CompassService, is_usable_heading
from qibla.core.location_service import LocationService
from qibla.core.qibla_calculator import QiblaCalculator
from qibla.models import GeoCoordinate, QiblaReading
from qibla.utils.constants import DEFAULT_ALIGNMENT_TOLERANCE
from qibla.utils.geometry import is_aligned

logger = logging.getLogger(__name__)


class QiblaSession:
    """
    One user's compass session.

    Attributes:
        location_service: Source of the user's position
        compass_service: Source of device headings
        calculator: Qibla bearing calculator
        alignment_tolerance: Degrees within which the device counts as facing the Qibla
    """

    def __init__(self, location_service: LocationService,
                 compass_service: Optional[CompassService] = None,
                 calculator: Optional[QiblaCalculator] = None,
                 alignment_tolerance: float = DEFAULT_ALIGNMENT_TOLERANCE):
        self.location_service = location_service
        self.compass_service = compass_service or CompassService()
        self.calculator = calculator or QiblaCalculator()
        self.alignment_tolerance = alignment_tolerance

        self._position: Optional[GeoCoordinate] = None
        self._bearing: Optional[float] = None
        self._write_lock = asyncio.Lock()

    @property
    def bearing(self) -> Optional[float]:
        """Cached Qibla bearing, or None before the first position fix."""
        return self._bearing

    @property
    def position(self) -> Optional[GeoCoordinate]:
        return self._position

    @property
    def distance_km(self) -> Optional[float]:
        if self._position is None:
            return None
        return self.calculator.distance_to_kaaba(self._position.latitude, self._position.longitude)

    async def initialize(self) -> float:
        """
        Fetch the position and compute the Qibla bearing.

        Returns:
            The Qibla bearing in degrees

        Raises:
            LocationServiceError: If the position cannot be obtained
        """
        async with self._write_lock:
            if self._bearing is not None:
                return self._bearing
            return await self._update_bearing()

    async def refresh_position(self) -> float:
        """
        Fetch a fresh position and replace the cached bearing.

        On failure the previous bearing is discarded, since it may no longer
        match where the user is.

        Raises:
            LocationServiceError: If the position cannot be obtained
        """
        async with self._write_lock:
            self.location_service.clear_cache()
            self._position = None
            self._bearing = None
            return await self._update_bearing()

    async def _update_bearing(self) -> float:
        position = await self.location_service.get_current_position()
        bearing = self.calculator.calculate_qibla_bearing(position.latitude, position.longitude)

        self._position = position
        self._bearing = bearing
        logger.info(f"Qibla bearing {bearing:.1f}° from {position.latitude:.4f}, {position.longitude:.4f}")
        return bearing

    def reading_for(self, heading: float) -> Optional[QiblaReading]:
        """
        Build the display reading for one heading sample.

        Args:
            heading: Device heading in degrees

        Returns:
            QiblaReading, or None if there is no bearing yet or the sample
            is not a finite number
        """
        bearing = self._bearing
        if bearing is None:
            return None

        if not is_usable_heading(heading):
            logger.debug(f"Dropped unusable heading sample: {heading!r}")
            return None

        angle = self.compass_service.calculate_qibla_angle(heading, bearing)
        return QiblaReading(
            heading=heading,
            bearing=bearing,
            angle=angle,
            aligned=is_aligned(angle, self.alignment_tolerance),
        )

    async def readings(self) -> AsyncIterator[QiblaReading]:
        """
        Stream display readings for every heading the compass reports.

        Headings that arrive before a bearing is known are skipped.
        """
        async for heading in self.compass_service.heading_stream():
            reading = self.reading_for(heading)
            if reading is not None:
                yield reading

    def close(self) -> None:
        """Stop the compass for this session."""
        self.compass_service.dispose()
