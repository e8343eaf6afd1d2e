"""Telemetry utilities for exporting decision events and metrics."""

from .event_sink import EventSink, FileEventSink, NullEventSink, sink_from_settings
from .logs import configure_logging
from .metrics import (
    configure_metrics,
    record_decision,
    record_decision_duration,
    record_enrichment_failure,
    record_synced_pull_requests,
    shutdown_metrics,
    collect_prometheus_metrics,
)

__all__ = [
    "EventSink",
    "FileEventSink",
    "NullEventSink",
    "sink_from_settings",
    "configure_logging",
    "configure_metrics",
    "record_decision",
    "record_decision_duration",
    "record_enrichment_failure",
    "record_synced_pull_requests",
    "shutdown_metrics",
    "collect_prometheus_metrics",
]
