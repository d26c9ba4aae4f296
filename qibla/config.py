"""
Centralized configuration module for the Qibla compass.
All configuration values should be accessed through this module.
"""

import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

from qibla.models import GeoCoordinate, InvalidCoordinateError
from qibla.utils.constants import DEFAULT_ALIGNMENT_TOLERANCE


# Load environment variables
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, '').strip()
    return float(value) if value else None


class Config:
    """Configuration class with all compass settings."""

    # Environment
    ENV = os.getenv('ENV', 'development')
    DEBUG = ENV == 'development'

    # Fallback position used until a client reports its own (unset = none)
    DEFAULT_LAT = _optional_float('DEFAULT_LAT')
    DEFAULT_LON = _optional_float('DEFAULT_LON')

    # WebSocket configuration
    WEBSOCKET_HOST = os.getenv('WEBSOCKET_HOST', '0.0.0.0')
    WEBSOCKET_PORT = int(os.getenv('WEBSOCKET_PORT', '8000'))
    MAX_MESSAGE_SIZE = int(os.getenv('MAX_MESSAGE_SIZE', '65536'))
    PING_INTERVAL = int(os.getenv('PING_INTERVAL', '20'))

    # Compass behaviour
    ALIGNMENT_TOLERANCE = float(os.getenv('ALIGNMENT_TOLERANCE', str(DEFAULT_ALIGNMENT_TOLERANCE)))

    # Logging configuration
    LOG_FILE = os.getenv('LOG_FILE', 'compass.log')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_MAX_SIZE = int(os.getenv('LOG_MAX_SIZE', '10485760'))  # 10MB
    LOG_BACKUP_COUNT = int(os.getenv('LOG_BACKUP_COUNT', '5'))

    @classmethod
    def validate(cls) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages, empty if valid
        """
        errors = []

        if (cls.DEFAULT_LAT is None) != (cls.DEFAULT_LON is None):
            errors.append("DEFAULT_LAT and DEFAULT_LON must be set together")

        if cls.DEFAULT_LAT is not None and not -90 <= cls.DEFAULT_LAT <= 90:
            errors.append("DEFAULT_LAT must be between -90 and 90")

        if cls.DEFAULT_LON is not None and not -180 <= cls.DEFAULT_LON <= 180:
            errors.append("DEFAULT_LON must be between -180 and 180")

        if not 0 < cls.WEBSOCKET_PORT < 65536:
            errors.append("WEBSOCKET_PORT must be between 1 and 65535")

        if not 0 <= cls.ALIGNMENT_TOLERANCE <= 180:
            errors.append("ALIGNMENT_TOLERANCE must be between 0 and 180")

        if cls.MAX_MESSAGE_SIZE <= 0:
            errors.append("MAX_MESSAGE_SIZE must be positive")

        if cls.LOG_LEVEL.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"Unknown LOG_LEVEL: {cls.LOG_LEVEL}")

        return errors

    @classmethod
    def default_position(cls) -> Optional[GeoCoordinate]:
        """
        Get the configured fallback position.

        Returns:
            GeoCoordinate, or None if no valid fallback is configured
        """
        if cls.DEFAULT_LAT is None or cls.DEFAULT_LON is None:
            return None
        try:
            return GeoCoordinate(cls.DEFAULT_LAT, cls.DEFAULT_LON)
        except InvalidCoordinateError:
            return None

    @classmethod
    def to_dict(cls) -> dict:
        """
        Export configuration as dictionary (excluding sensitive data).

        Returns:
            Configuration dictionary
        """
        default = cls.default_position()
        return {
            'ENV': cls.ENV,
            'DEBUG': cls.DEBUG,
            'DEFAULT_POSITION': default.to_dict() if default else None,
            'WEBSOCKET_HOST': cls.WEBSOCKET_HOST,
            'WEBSOCKET_PORT': cls.WEBSOCKET_PORT,
            'ALIGNMENT_TOLERANCE': cls.ALIGNMENT_TOLERANCE,
            'LOG_LEVEL': cls.LOG_LEVEL,
        }


# Create singleton instance
config = Config()
