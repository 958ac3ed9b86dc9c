"""Per-request ordered event channel between the agent loop and the transport."""

import asyncio
from collections.abc import AsyncIterator

from console_ai.models.events import StreamEvent
from console_ai.utils.logging import get_logger

logger = get_logger(__name__)


def encode_sse(event: StreamEvent) -> str:
    """Render an event as a ``data: <json>`` server-sent events frame."""
    return event.to_sse()


class EventChannel:
    """Single-producer, single-consumer queue of stream events.

    The producer (the agent loop) calls ``emit`` and finally ``close``; the consumer
    iterates the channel until the terminal ``done`` event. If the consumer goes away,
    ``disconnect`` turns every later ``emit`` into a no-op while the producer finishes
    its round.
    """

    def __init__(self):
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._closed = False
        self._disconnected = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def emit(self, event: StreamEvent) -> None:
        """Enqueue an event without blocking; dropped once closed or disconnected."""
        if self._closed or self._disconnected:
            return
        try:
            self._queue.put_nowait(event)
        except Exception as e:
            logger.warning(f"Dropping {event.type} event: {e}")

    def close(self) -> None:
        """Emit the terminal ``done`` event and stop accepting events. Idempotent."""
        if self._closed:
            return
        self.emit(StreamEvent.done())
        self._closed = True

    def disconnect(self) -> None:
        """Mark the consumer as gone."""
        if not self._disconnected:
            logger.info("Stream consumer disconnected, suppressing further events")
        self._disconnected = True

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if event.type == "done":
                return

    async def sse(self) -> AsyncIterator[str]:
        """Server-sent event frames; a cancelled consumer disconnects the channel."""
        try:
            async for event in self:
                yield encode_sse(event)
        finally:
            if not self._closed:
                self.disconnect()
