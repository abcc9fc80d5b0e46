"""Telemetry utilities for update notifications and metrics."""

from .event_sink import EventSink, FileEventSink, NullEventSink, WebhookEventSink, sink_from_settings
from .metrics import (
    configure_metrics,
    record_cache_lookup,
    record_timeline_reconstruction,
    shutdown_metrics,
)

__all__ = [
    "EventSink",
    "FileEventSink",
    "NullEventSink",
    "WebhookEventSink",
    "sink_from_settings",
    "configure_metrics",
    "record_cache_lookup",
    "record_timeline_reconstruction",
    "shutdown_metrics",
]
