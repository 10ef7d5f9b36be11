"""
Fire-and-forget observability events.

Components:
- BoundedEventEmitter: bounded non-blocking queue, drop-on-full
- BaseEventSink: destination abstraction
- LoggingEventSink: structlog + Prometheus sink (default)
"""

from threat_inference.observability.emitter import BoundedEventEmitter
from threat_inference.observability.sinks import BaseEventSink, LoggingEventSink

__all__ = [
    "BoundedEventEmitter",
    "BaseEventSink",
    "LoggingEventSink",
]
