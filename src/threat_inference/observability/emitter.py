"""
Fire-and-forget observability emitter.

emit() puts the event on a bounded asyncio.Queue with put_nowait and returns
immediately; one consumer task drains the queue into the sink. When the
queue is full the event is dropped and counted, so a slow or failing sink
can never stall or fail an analysis.

Usage:
    emitter = BoundedEventEmitter(LoggingEventSink(), maxsize=1000)
    emitter.start()          # inside a running event loop
    emitter.emit(event)      # never blocks, never raises
    await emitter.close()    # drain and stop on shutdown
"""

import asyncio
from typing import Optional
import structlog

from threat_inference.models.events import ObservabilityEvent
from threat_inference.monitoring.metrics import observability_events_dropped_total
from threat_inference.observability.sinks import BaseEventSink


logger = structlog.get_logger(__name__)


class BoundedEventEmitter:
    """
    Bounded, non-blocking event queue in front of a sink.

    Events emitted before start() are buffered (up to maxsize) and
    delivered once the consumer runs.
    """

    def __init__(self, sink: BaseEventSink, maxsize: int = 1000):
        self.sink = sink
        self.maxsize = maxsize
        self._queue: asyncio.Queue[ObservabilityEvent] = asyncio.Queue(maxsize=maxsize)
        self._consumer: Optional[asyncio.Task] = None
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def emit(self, event: ObservabilityEvent) -> bool:
        """
        Queue an event for delivery.

        Returns:
            True if queued, False if dropped because the queue is full
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            observability_events_dropped_total.inc()
            logger.debug("Observability queue full, dropping event", event_name=event.name)
            return False
        return True

    def start(self) -> None:
        """Start the consumer task. Must be called from a running event loop."""
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self._consume(), name="observability-emitter")
            logger.info("Started observability emitter", maxsize=self.maxsize)

    async def _deliver(self, event: ObservabilityEvent) -> None:
        try:
            await self.sink.write(event)
        except Exception as e:
            logger.warning(
                "Observability sink write failed, dropping event",
                event_name=event.name,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """
        Deliver everything queued so far.

        With a running consumer this waits for it to catch up; without one
        the queue is drained inline.
        """
        if self._consumer is not None and not self._consumer.done():
            await self._queue.join()
            return

        while not self._queue.empty():
            event = self._queue.get_nowait()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def close(self) -> None:
        """Drain pending events, stop the consumer and close the sink."""
        await self.drain()
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        await self.sink.close()
        logger.info("Closed observability emitter", dropped=self.dropped)
