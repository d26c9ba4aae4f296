"""
WebSocket message validation module.

This module provides schema validation for all WebSocket messages exchanged
between the browser client and the compass server. The client reports what
its platform sensors say (position, permission state, headings); the server
answers with the Qibla bearing and rotation angles for the display.

The validator enforces:
- Message structure and type safety
- Field presence and data types
- Value ranges for coordinates and angles

All client messages must pass validation before being processed.
"""

import json
import math
from typing import Dict, Any
from enum import Enum

from qibla.core.location_service import PermissionStatus


class MessageType(Enum):
    """
    Valid WebSocket message types.

    Separated by direction (client-to-server vs server-to-client).
    """
    # Client to Server messages
    CLIENT_HELLO = "hello"                  # Initial connection handshake
    GET_CONFIG = "get_config"               # Request public configuration
    POSITION = "position"                   # Position fix from the device
    LOCATION_STATUS = "location_status"     # Permission / location services state
    HEADING = "heading"                     # One orientation sensor sample
    REFRESH = "refresh"                     # Recompute bearing from a fresh fix

    # Server to Client messages
    WELCOME = "welcome"                     # Connection accepted
    CONFIG = "config"                       # Configuration response
    QIBLA = "qibla"                         # Bearing for the current position
    ROTATION = "rotation"                   # Display angle for one heading
    ERROR = "error"                         # Error notification


class ValidationError(Exception):
    """
    Custom exception for message validation errors.

    The error message is safe to send back to the client.
    """
    pass


def _is_number(value: Any) -> bool:
    """Check for a JSON number that fits in a float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        float(value)
    except OverflowError:
        return False
    return True


def _is_finite_number(value: Any) -> bool:
    return _is_number(value) and math.isfinite(float(value))


class MessageValidator:
    """
    Validates WebSocket messages between client and server.
    """

    @staticmethod
    def validate_client_message(message: str) -> Dict[str, Any]:
        """
        Validate messages from client to server.

        Args:
            message: Raw message string from client

        Returns:
            Validated message dictionary

        Raises:
            ValidationError: If message is invalid
        """
        try:
            data = json.loads(message)
        except (json.JSONDecodeError, TypeError) as e:
            raise ValidationError(f"Invalid JSON: {e}")

        if not isinstance(data, dict):
            raise ValidationError("Message must be a JSON object")

        if "type" not in data:
            raise ValidationError("Message must have a 'type' field")

        msg_type = data["type"]

        if msg_type in (MessageType.CLIENT_HELLO.value,
                        MessageType.GET_CONFIG.value,
                        MessageType.REFRESH.value):
            return data
        elif msg_type == MessageType.POSITION.value:
            return MessageValidator._validate_position(data)
        elif msg_type == MessageType.LOCATION_STATUS.value:
            return MessageValidator._validate_location_status(data)
        elif msg_type == MessageType.HEADING.value:
            return MessageValidator._validate_heading(data)
        else:
            raise ValidationError(f"Unknown message type: {msg_type}")

    @staticmethod
    def validate_coordinates(data: Dict[str, Any]) -> bool:
        """
        Validate latitude/longitude fields.

        Raises:
            ValidationError: If coordinates are missing or out of range
        """
        for field in ("lat", "lon"):
            if field not in data:
                raise ValidationError(f"Missing required field: {field}")
            if not _is_finite_number(data[field]):
                raise ValidationError(f"{field} must be a finite number")

        if not -90 <= data["lat"] <= 90:
            raise ValidationError("Latitude must be between -90 and 90")

        if not -180 <= data["lon"] <= 180:
            raise ValidationError("Longitude must be between -180 and 180")

        return True

    @staticmethod
    def _validate_position(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate position report."""
        MessageValidator.validate_coordinates(data)

        if "accuracy" in data and data["accuracy"] is not None:
            if not _is_finite_number(data["accuracy"]) or data["accuracy"] < 0:
                raise ValidationError("Accuracy must be a non-negative number")

        return data

    @staticmethod
    def _validate_location_status(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate permission / location services report."""
        if "permission" not in data and "service_enabled" not in data:
            raise ValidationError("Location status needs 'permission' or 'service_enabled'")

        if "permission" in data:
            valid = [status.value for status in PermissionStatus]
            if data["permission"] not in valid:
                raise ValidationError(f"Permission must be one of: {', '.join(valid)}")

        if "service_enabled" in data and not isinstance(data["service_enabled"], bool):
            raise ValidationError("service_enabled must be a boolean")

        return data

    @staticmethod
    def _validate_heading(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate heading sample.

        The heading may be null (sensor had no reading) and is not range
        checked; out-of-range and non-finite values are handled downstream.
        """
        if "heading" not in data:
            raise ValidationError("Heading message must have a 'heading' field")

        heading = data["heading"]
        if heading is not None and not _is_number(heading):
            raise ValidationError("Heading must be a number (within float range) or null")

        return data

    @staticmethod
    def validate_server_message(message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate messages from server to client.

        Args:
            message: Message dictionary to send

        Returns:
            Validated message dictionary

        Raises:
            ValidationError: If message is invalid
        """
        if not isinstance(message, dict):
            raise ValidationError("Message must be a dictionary")

        if "type" not in message:
            raise ValidationError("Message must have a 'type' field")

        msg_type = message["type"]

        if msg_type in (MessageType.WELCOME.value, MessageType.CONFIG.value):
            return message
        elif msg_type == MessageType.QIBLA.value:
            return MessageValidator._validate_qibla(message)
        elif msg_type == MessageType.ROTATION.value:
            return MessageValidator._validate_rotation(message)
        elif msg_type == MessageType.ERROR.value:
            return MessageValidator._validate_error(message)
        else:
            raise ValidationError(f"Unknown message type: {msg_type}")

    @staticmethod
    def _validate_qibla(message: Dict[str, Any]) -> Dict[str, Any]:
        """Validate bearing message."""
        for field in ("bearing", "distance_km", "lat", "lon"):
            if field not in message:
                raise ValidationError(f"Qibla message missing required field: {field}")
            if not _is_finite_number(message[field]):
                raise ValidationError(f"{field} must be numeric")

        if not 0 <= message["bearing"] < 360:
            raise ValidationError("Bearing must be in [0, 360)")

        if message["distance_km"] < 0:
            raise ValidationError("Distance cannot be negative")

        return message

    @staticmethod
    def _validate_rotation(message: Dict[str, Any]) -> Dict[str, Any]:
        """Validate rotation message."""
        for field in ("heading", "bearing", "angle", "aligned"):
            if field not in message:
                raise ValidationError(f"Rotation message missing required field: {field}")

        for field in ("heading", "bearing", "angle"):
            if not _is_finite_number(message[field]):
                raise ValidationError(f"{field} must be numeric")

        if not 0 <= message["angle"] < 360:
            raise ValidationError("Angle must be in [0, 360)")

        if not isinstance(message["aligned"], bool):
            raise ValidationError("aligned must be a boolean")

        return message

    @staticmethod
    def _validate_error(message: Dict[str, Any]) -> Dict[str, Any]:
        """Validate error message."""
        if "error" not in message:
            raise ValidationError("Error message must have 'error' field")

        if not isinstance(message["error"], str):
            raise ValidationError("Error field must be a string")

        if "kind" in message and not isinstance(message["kind"], str):
            raise ValidationError("Error kind must be a string")

        return message
