"""
Error types raised by the location and compass services.

The bearing and rotation calculations never raise these; they describe
failures of the collaborators that feed them (permissions, location services,
and the orientation sensor). Each error carries a short ``kind`` code that is
safe to send to the presentation layer, which decides how to offer a retry.
"""

from typing import Dict, Any


class QiblaError(Exception):
    """Base class for all service-level errors."""

    kind = 'error'
    retryable = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to an error message for clients."""
        return {
            'type': 'error',
            'error': self.message,
            'kind': self.kind,
            'retryable': self.retryable,
        }


class LocationServiceError(QiblaError):
    """Raised when the user's position cannot be obtained."""
    kind = 'location_error'


class PermissionDenied(LocationServiceError):
    """Location permission was refused for now."""
    kind = 'permission_denied'

    def __init__(self, message: str = 'Location permissions are denied. '
                                      'Please enable them in app settings.'):
        super().__init__(message)


class PermissionDeniedPermanently(LocationServiceError):
    """Location permission was refused and can only be granted in settings."""
    kind = 'permission_denied_forever'
    retryable = False

    def __init__(self, message: str = 'Location permissions are permanently denied. '
                                      'Please enable them in app settings.'):
        super().__init__(message)


class ServiceDisabled(LocationServiceError):
    """Location services are switched off on the device."""
    kind = 'service_disabled'

    def __init__(self, message: str = 'Location services are disabled. '
                                      'Please enable them to use the Qibla compass.'):
        super().__init__(message)


class LocationUnavailable(LocationServiceError):
    """The provider could not produce a position fix."""
    kind = 'location_unavailable'


class CompassServiceError(QiblaError):
    """Raised when the orientation sensor fails."""
    kind = 'compass_error'


class SensorUnavailable(CompassServiceError):
    """No heading sensor is available, or it stopped delivering readings."""
    kind = 'sensor_unavailable'

    def __init__(self, message: str = 'Compass sensor is not available on this device.'):
        super().__init__(message)
