#!/usr/bin/env python3
"""
Run the Qibla compass WebSocket server.
"""

import asyncio
import logging
import sys

from qibla.config import Config
from qibla.websocket.server import main, setup_logging

logger = logging.getLogger(__name__)


def run() -> None:
    """Validate configuration and serve until interrupted."""
    setup_logging()

    errors = Config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    run()
