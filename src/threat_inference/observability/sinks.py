"""
Destinations for observability events.

A sink receives events from the BoundedEventEmitter consumer task, one at a
time. Sinks may be slow or fail; the emitter shields the analysis path from
both.
"""

from abc import ABC, abstractmethod
import structlog

from threat_inference.models.events import ObservabilityEvent
from threat_inference.monitoring.metrics import observability_events_total


logger = structlog.get_logger(__name__)


class BaseEventSink(ABC):
    """Abstract destination for observability events."""

    @abstractmethod
    async def write(self, event: ObservabilityEvent) -> None:
        """
        Deliver one event.

        Raises:
            Any exception on delivery failure; the emitter logs and drops it.
        """
        pass

    async def close(self):
        """Release sink resources. Default implementation does nothing."""


class LoggingEventSink(BaseEventSink):
    """
    Writes events to the structured log and counts them in Prometheus.

    Default sink: analytics pipelines can tail the JSON logs in production.
    """

    async def write(self, event: ObservabilityEvent) -> None:
        observability_events_total.labels(event=event.name or "unnamed").inc()
        logger.info(
            "Observability event",
            event_name=event.name,
            tags=event.tags[1:],
            metrics=event.metrics,
            partition_key=event.partition_key,
        )
