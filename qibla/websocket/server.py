"""
WebSocket server bridging browser clients and the Qibla compass services.

Each connected client gets its own session. The browser reports its position
and orientation samples; the server answers with the Qibla bearing once and
then a rotation angle for every usable heading sample.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

import websockets
from websockets.asyncio.server import ServerConnection

from qibla.config import Config
from qibla.core.compass_service import CompassService, QueueHeadingSource
from qibla.core.location_service import (
    ClientLocationProvider,
    LocationService,
    PermissionStatus,
)
from qibla.core.qibla_session import QiblaSession
from qibla.errors import CompassServiceError, LocationServiceError, QiblaError
from qibla.models import GeoCoordinate
from qibla.websocket.message_validator import MessageType, MessageValidator, ValidationError

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure root logging to a rotating file and the console."""
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            RotatingFileHandler(
                Config.LOG_FILE,
                maxBytes=Config.LOG_MAX_SIZE,
                backupCount=Config.LOG_BACKUP_COUNT,
            ),
            logging.StreamHandler()
        ]
    )


class ClientContext:
    """Per-connection state: location source, heading feed, and session."""

    def __init__(self, fallback: Optional[GeoCoordinate], alignment_tolerance: float):
        self.provider = ClientLocationProvider(fallback=fallback)
        self.headings = QueueHeadingSource()
        self.session = QiblaSession(
            LocationService(self.provider),
            CompassService(),
            alignment_tolerance=alignment_tolerance,
        )
        self.stream_task: Optional[asyncio.Task] = None


class QiblaCompassServer:
    """Main WebSocket server class."""

    def __init__(self, fallback_position: Optional[GeoCoordinate] = None,
                 alignment_tolerance: Optional[float] = None):
        self.clients: Dict[ServerConnection, ClientContext] = {}
        self.fallback_position = fallback_position
        self.alignment_tolerance = (
            Config.ALIGNMENT_TOLERANCE if alignment_tolerance is None else alignment_tolerance
        )

    async def send_message(self, websocket: ServerConnection, message: Dict[str, Any]) -> None:
        """Validate, timestamp, and send one message to a client."""
        MessageValidator.validate_server_message(message)
        message['timestamp'] = datetime.now(timezone.utc).isoformat()
        await websocket.send(json.dumps(message))

    async def send_error(self, websocket: ServerConnection, error: QiblaError) -> None:
        await self.send_message(websocket, error.to_dict())

    async def send_qibla(self, websocket: ServerConnection, context: ClientContext) -> None:
        """Send the cached bearing for the client's position."""
        session = context.session
        await self.send_message(websocket, {
            'type': MessageType.QIBLA.value,
            'bearing': session.bearing,
            'distance_km': round(session.distance_km, 1),
            'lat': session.position.latitude,
            'lon': session.position.longitude,
        })

    async def update_bearing(self, websocket: ServerConnection, context: ClientContext) -> None:
        """Recompute the bearing from a fresh position and report the outcome."""
        try:
            await context.session.refresh_position()
        except LocationServiceError as e:
            logger.info(f"Location unavailable for client: {e.kind}")
            await self.send_error(websocket, e)
            return

        await self.send_qibla(websocket, context)

    async def stream_rotations(self, websocket: ServerConnection, context: ClientContext) -> None:
        """Send a rotation message for every usable heading sample."""
        try:
            try:
                async for reading in context.session.readings():
                    message = {'type': MessageType.ROTATION.value}
                    message.update(reading.to_dict())
                    await self.send_message(websocket, message)
            except CompassServiceError as e:
                await self.send_error(websocket, e)
        except websockets.exceptions.ConnectionClosed:
            pass

    async def handle_client_message(self, websocket: ServerConnection,
                                    context: ClientContext, message: str) -> None:
        """Handle incoming messages from clients."""
        try:
            data = MessageValidator.validate_client_message(message)
        except ValidationError as e:
            logger.warning(f"Invalid message from client: {e}")
            await self.send_message(websocket, {
                'type': MessageType.ERROR.value,
                'error': str(e),
                'kind': 'invalid_message',
                'retryable': False,
            })
            return

        msg_type = data['type']
        logger.debug(f"Received from client: {data}")

        if msg_type == MessageType.HEADING.value:
            context.headings.put(data['heading'])

        elif msg_type == MessageType.POSITION.value:
            context.provider.report_position(GeoCoordinate(data['lat'], data['lon']))
            await self.update_bearing(websocket, context)

        elif msg_type == MessageType.LOCATION_STATUS.value:
            if 'permission' in data:
                context.provider.report_permission(PermissionStatus(data['permission']))
            if 'service_enabled' in data:
                context.provider.report_service_enabled(data['service_enabled'])

            # Only a status that makes the position unusable needs an answer
            if not context.provider.permission.is_granted or not context.provider.service_enabled:
                await self.update_bearing(websocket, context)

        elif msg_type == MessageType.REFRESH.value:
            await self.update_bearing(websocket, context)

        elif msg_type == MessageType.GET_CONFIG.value:
            await self.send_message(websocket, {
                'type': MessageType.CONFIG.value,
                'config': Config.to_dict(),
            })

        elif msg_type == MessageType.CLIENT_HELLO.value:
            if context.session.bearing is not None:
                await self.send_qibla(websocket, context)

    async def handle_client(self, websocket: ServerConnection) -> None:
        """Handle a new WebSocket client connection."""
        client_address = getattr(websocket, 'remote_address', 'unknown')
        logger.info(f"New client connected from {client_address}")

        context = ClientContext(self.fallback_position, self.alignment_tolerance)
        self.clients[websocket] = context

        try:
            context.session.compass_service.start_listening(context.headings)
            context.stream_task = asyncio.create_task(self.stream_rotations(websocket, context))

            await self.send_message(websocket, {
                'type': MessageType.WELCOME.value,
                'message': 'Connected to Qibla Compass'
            })

            if self.fallback_position is not None:
                await self.update_bearing(websocket, context)

            async for message in websocket:
                try:
                    await self.handle_client_message(websocket, context, message)
                except websockets.exceptions.ConnectionClosed:
                    raise
                except Exception as e:
                    logger.error(f"Error handling client message: {e}")

        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client {client_address} disconnected")
        finally:
            self.clients.pop(websocket, None)
            context.headings.close()
            context.session.close()

            if context.stream_task:
                context.stream_task.cancel()
                try:
                    await context.stream_task
                except asyncio.CancelledError:
                    pass


async def main() -> None:
    """Main server entry point."""
    server = QiblaCompassServer(
        fallback_position=Config.default_position(),
        alignment_tolerance=Config.ALIGNMENT_TOLERANCE,
    )

    logger.info(f"Starting WebSocket server on {Config.WEBSOCKET_HOST}:{Config.WEBSOCKET_PORT}")

    async with websockets.serve(
        server.handle_client,
        Config.WEBSOCKET_HOST,
        Config.WEBSOCKET_PORT,
        compression=None,
        max_size=Config.MAX_MESSAGE_SIZE,
        ping_interval=Config.PING_INTERVAL,
        ping_timeout=10,
        close_timeout=10,
    ):
        logger.info(f"Server running at ws://{Config.WEBSOCKET_HOST}:{Config.WEBSOCKET_PORT}/ws")
        await asyncio.Future()  # Run forever
