"""
Location service module for obtaining the user's position.

The position only needs to be fetched once per session, since the Qibla bearing
barely changes while the compass is in use. This module wraps a pluggable
location provider, walks through the permission checks, caches the fix, and
reports every failure as one of the typed errors in ``qibla.errors``.

Two providers ship with the package:

- StaticLocationProvider: a fixed, configured position
- ClientLocationProvider: a position reported by a remote client, e.g. a
  browser using the Geolocation API over the WebSocket connection
"""

import logging
from enum import Enum
from typing import Optional, Protocol

from qibla.errors import (
    LocationServiceError,
    LocationUnavailable,
    PermissionDenied,
    PermissionDeniedPermanently,
    ServiceDisabled,
)
from qibla.models import GeoCoordinate

logger = logging.getLogger(__name__)


class PermissionStatus(Enum):
    """Location permission states reported by a provider."""
    DENIED = "denied"
    DENIED_FOREVER = "denied_forever"
    WHILE_IN_USE = "while_in_use"
    ALWAYS = "always"
    UNABLE_TO_DETERMINE = "unable_to_determine"

    @property
    def is_granted(self) -> bool:
        return self in (PermissionStatus.WHILE_IN_USE, PermissionStatus.ALWAYS)


class LocationProvider(Protocol):
    """Interface every location source implements."""

    async def check_permission(self) -> PermissionStatus:
        ...

    async def request_permission(self) -> PermissionStatus:
        ...

    async def is_location_service_enabled(self) -> bool:
        ...

    async def get_current_position(self) -> GeoCoordinate:
        ...


class StaticLocationProvider:
    """Provider for a fixed position; permission is always granted."""

    def __init__(self, coordinate: GeoCoordinate):
        self.coordinate = coordinate

    async def check_permission(self) -> PermissionStatus:
        return PermissionStatus.ALWAYS

    async def request_permission(self) -> PermissionStatus:
        return PermissionStatus.ALWAYS

    async def is_location_service_enabled(self) -> bool:
        return True

    async def get_current_position(self) -> GeoCoordinate:
        return self.coordinate


class ClientLocationProvider:
    """
    Provider fed by a remote client.

    The client reports what its platform told it: the position, the
    permission status and whether location services are on. Permission
    cannot be requested from here, so a request simply returns the last
    reported status.

    Attributes:
        position: Last reported position, if any
        permission: Last reported permission status
        service_enabled: Last reported location services state
        fallback: Position used when the client has not reported one
    """

    def __init__(self, fallback: Optional[GeoCoordinate] = None):
        self.position: Optional[GeoCoordinate] = None
        self.permission = PermissionStatus.WHILE_IN_USE
        self.service_enabled = True
        self.fallback = fallback

    def report_position(self, position: GeoCoordinate) -> None:
        """Record a position fix; a fix implies permission and service are on."""
        self.position = position
        if not self.permission.is_granted:
            self.permission = PermissionStatus.WHILE_IN_USE
        self.service_enabled = True

    def report_permission(self, permission: PermissionStatus) -> None:
        self.permission = permission
        if not permission.is_granted:
            self.position = None

    def report_service_enabled(self, enabled: bool) -> None:
        self.service_enabled = enabled
        if not enabled:
            self.position = None

    async def check_permission(self) -> PermissionStatus:
        return self.permission

    async def request_permission(self) -> PermissionStatus:
        return self.permission

    async def is_location_service_enabled(self) -> bool:
        return self.service_enabled

    async def get_current_position(self) -> GeoCoordinate:
        if self.position is not None:
            return self.position
        if self.fallback is not None:
            logger.info("No position reported by client, using fallback position")
            return self.fallback
        raise LocationUnavailable("Waiting for the device to report its location.")


class LocationService:
    """
    Service for handling location permissions and the current position.

    Attributes:
        provider: Source of permission state and position fixes
    """

    def __init__(self, provider: LocationProvider):
        self.provider = provider
        self._cached_position: Optional[GeoCoordinate] = None

    @property
    def cached_position(self) -> Optional[GeoCoordinate]:
        return self._cached_position

    async def check_permission(self) -> PermissionStatus:
        """
        Check the current location permission.

        Provider failures are reported as DENIED so callers can go through
        the regular denied path.
        """
        try:
            return await self.provider.check_permission()
        except Exception as e:
            logger.warning(f"Permission check failed: {e}")
            return PermissionStatus.DENIED

    async def request_permission(self) -> PermissionStatus:
        """
        Request location permission from the user.

        If permission was permanently denied, the user has to enable it in
        the app settings; the request then returns DENIED_FOREVER.
        """
        try:
            return await self.provider.request_permission()
        except Exception as e:
            logger.warning(f"Permission request failed: {e}")
            return PermissionStatus.DENIED

    async def get_current_position(self) -> GeoCoordinate:
        """
        Get the user's current position, using the cache when possible.

        Returns:
            The current (or cached) position

        Raises:
            PermissionDenied: Permission refused, request also refused
            PermissionDeniedPermanently: Permission can only be enabled in settings
            ServiceDisabled: Location services are switched off
            LocationUnavailable: The provider failed to produce a fix
        """
        if self._cached_position is not None:
            return self._cached_position

        permission = await self.check_permission()
        if permission == PermissionStatus.DENIED:
            permission = await self.request_permission()
            if permission == PermissionStatus.DENIED:
                logger.warning("Location permission denied")
                raise PermissionDenied()

        if permission == PermissionStatus.DENIED_FOREVER:
            logger.warning("Location permission permanently denied")
            raise PermissionDeniedPermanently()

        if not await self.provider.is_location_service_enabled():
            logger.warning("Location services are disabled")
            raise ServiceDisabled()

        try:
            position = await self.provider.get_current_position()
        except LocationServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to get location: {e}")
            raise LocationUnavailable(f"Failed to get location: {e}") from e

        self._cached_position = position
        logger.info(f"Position fixed at {position.latitude:.4f}, {position.longitude:.4f}")
        return position

    def clear_cache(self) -> None:
        """Clear the cached position so the next call fetches a fresh one."""
        self._cached_position = None
