"""OpenTelemetry metrics instrumentation helpers."""

from __future__ import annotations

import logging

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from openprs.core.config import settings

_logger = logging.getLogger(__name__)

_metrics_enabled = False
_meter = None
_provider: MeterProvider | None = None
_decision_duration_hist = None
_decision_counter = None
_sync_pr_counter = None
_sync_failure_counter = None


def configure_metrics() -> None:
    """Initialise the metrics provider if enabled via settings."""

    global _metrics_enabled, _meter, _decision_duration_hist, _decision_counter, _sync_pr_counter, _sync_failure_counter, _provider

    if not settings.otel_enabled:
        return
    if _metrics_enabled:
        return

    exporter_name = settings.otel_exporter.lower().strip()
    metric_readers = []

    if exporter_name == "console":
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))
    elif exporter_name == "prometheus":
        try:
            from opentelemetry.exporter.prometheus import PrometheusMetricReader  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "Prometheus exporter selected but opentelemetry-exporter-prometheus is not installed."
            ) from exc
        metric_readers.append(PrometheusMetricReader())
    elif exporter_name == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "OTLP exporter selected but opentelemetry-exporter-otlp is not installed."
            ) from exc
        endpoint = settings.otel_otlp_endpoint
        exporter = OTLPMetricExporter(endpoint=endpoint) if endpoint else OTLPMetricExporter()
        metric_readers.append(PeriodicExportingMetricReader(exporter))
    else:
        _logger.warning("Unsupported OTEL exporter '%s'; defaulting to console", exporter_name)
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    _provider = MeterProvider(metric_readers=metric_readers, resource=Resource.create({"service.name": "openprs"}))
    metrics.set_meter_provider(_provider)
    _meter = metrics.get_meter("openprs")
    _decision_duration_hist = _meter.create_histogram(
        name="openprs.decision.duration",
        unit="s",
        description="Time spent deciding the attention state of one pull request",
    )
    _decision_counter = _meter.create_counter(
        name="openprs.decision.count",
        unit="1",
        description="Decisions produced, labelled by category and subcategory",
    )
    _sync_pr_counter = _meter.create_counter(
        name="openprs.sync.prs",
        unit="1",
        description="Pull requests stored by the import job",
    )
    _sync_failure_counter = _meter.create_counter(
        name="openprs.sync.enrichment_failures",
        unit="1",
        description="Open pull requests stored with fallback categories after enrichment failed",
    )
    _metrics_enabled = True


def record_decision_duration(seconds: float) -> None:
    if _metrics_enabled and _decision_duration_hist is not None:
        _decision_duration_hist.record(max(seconds, 0.0))


def record_decision(category: str, subcategory: str) -> None:
    if _metrics_enabled and _decision_counter is not None:
        _decision_counter.add(1, {"category": category, "subcategory": subcategory or "Uncategorized"})


def record_synced_pull_requests(repo: str, count: int) -> None:
    if _metrics_enabled and _sync_pr_counter is not None and count:
        _sync_pr_counter.add(count, {"repo": repo})


def record_enrichment_failure(repo: str) -> None:
    if _metrics_enabled and _sync_failure_counter is not None:
        _sync_failure_counter.add(1, {"repo": repo})


def collect_prometheus_metrics() -> tuple[bytes, str]:
    """Render the default Prometheus registry for the ``/metrics`` endpoint."""

    try:
        from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "Prometheus exporter selected but opentelemetry-exporter-prometheus is not installed."
        ) from exc
    return generate_latest(), CONTENT_TYPE_LATEST


def shutdown_metrics() -> None:
    global _metrics_enabled, _provider
    if _metrics_enabled and _provider is not None:
        try:
            _provider.shutdown()
        except Exception:  # pragma: no cover
            _logger.exception("Failed to shutdown metrics provider")
        finally:
            _metrics_enabled = False
            _provider = None
