"""
Compass service module for device heading updates.

Heading samples come from an orientation sensor as an asynchronous stream. The
service drops samples that carry no usable reading and fans the rest out to
any number of subscribers.

Note: heading semantics depend on the platform. Some report true north, others
magnetic north (which may differ from true north by several degrees). No
declination correction is applied; headings are used as reported.
"""

import asyncio
import logging
import math
from typing import Any, AsyncIterable, AsyncIterator, Optional, Set

from qibla.errors import SensorUnavailable
from qibla.utils.geometry import rotation_angle

logger = logging.getLogger(__name__)

# Marks the end of a stream
_END = object()


class _SensorFailure:
    """Published when the sensor stream fails; each subscriber raises its own error."""

    def __init__(self, message: str):
        self.message = message


def is_usable_heading(sample: Any) -> bool:
    """Check that a heading sample is a finite number."""
    if isinstance(sample, bool) or not isinstance(sample, (int, float)):
        return False
    try:
        return math.isfinite(float(sample))
    except OverflowError:
        # Integers too large for a float
        return False


class QueueHeadingSource:
    """
    Heading stream fed by hand, for sensors that push readings elsewhere.

    Samples put into the source are delivered in order to whoever iterates
    it. ``None`` stands for a tick where the sensor had no reading.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, sample: Optional[float]) -> None:
        """Deliver one sample; ignored once the source is closed."""
        if self._closed:
            return
        self._queue.put_nowait(sample)

    def close(self) -> None:
        """End the stream after any samples already delivered."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> AsyncIterator[Optional[float]]:
        return self

    async def __anext__(self) -> Optional[float]:
        item = await self._queue.get()
        if item is _END:
            raise StopAsyncIteration
        return item


class CompassService:
    """
    Service for handling device compass sensor data.

    Attributes:
        dropped_samples: Number of samples discarded as unusable
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._subscribers: Set[asyncio.Queue] = set()
        self.dropped_samples = 0

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_listening(self, source: Optional[AsyncIterable[Optional[float]]]) -> None:
        """
        Start consuming heading samples from a sensor stream.

        Must be called from within a running event loop. Calling it while
        already listening does nothing.

        Args:
            source: Async iterable of heading samples in degrees, or None if
                the device has no heading sensor

        Raises:
            SensorUnavailable: If no sensor stream is available
        """
        if self.is_listening:
            return

        if source is None:
            raise SensorUnavailable()

        self._task = asyncio.get_running_loop().create_task(self._consume(source))
        logger.debug("Compass listening started")

    async def _consume(self, source: AsyncIterable[Optional[float]]) -> None:
        """Forward usable samples from the source to every subscriber."""
        try:
            async for sample in source:
                if sample is None:
                    # Sensor had no reading for this tick
                    self.dropped_samples += 1
                    continue

                if not is_usable_heading(sample):
                    self.dropped_samples += 1
                    logger.debug(f"Dropped unusable heading sample: {sample!r}")
                    continue

                self._publish(float(sample))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Compass sensor error: {e}")
            self._publish(_SensorFailure(f"Compass sensor error: {e}"))

        self._publish(_END)

    def _publish(self, item: Any) -> None:
        for queue in self._subscribers:
            queue.put_nowait(item)

    async def heading_stream(self) -> AsyncIterator[float]:
        """
        Stream of device headings in degrees, as reported by the sensor.

        Each call creates an independent subscriber. The stream ends when
        listening stops.

        Raises:
            SensorUnavailable: If the sensor stream fails
        """
        if not self.is_listening:
            return

        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            while True:
                item = await queue.get()
                if item is _END:
                    return
                if isinstance(item, _SensorFailure):
                    raise SensorUnavailable(item.message)
                yield item
        finally:
            self._subscribers.discard(queue)

    def stop_listening(self) -> None:
        """Stop consuming sensor updates and end all heading streams."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("Compass listening stopped")
        self._publish(_END)

    def calculate_qibla_angle(self, device_heading: float, qibla_bearing: float) -> float:
        """
        Calculate the Qibla angle for display on the compass.

        The angle says how far to rotate the Qibla arrow relative to the
        device's current orientation. 0 means the device points at the Qibla.

        Args:
            device_heading: Device heading in degrees
            qibla_bearing: Qibla bearing in degrees from true north

        Returns:
            Angle in degrees, 0 <= result < 360
        """
        return rotation_angle(device_heading, qibla_bearing)

    def dispose(self) -> None:
        """Release the sensor stream and all subscribers."""
        self.stop_listening()
        self._subscribers.clear()
