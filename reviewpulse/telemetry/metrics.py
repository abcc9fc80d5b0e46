"""OpenTelemetry metrics instrumentation helpers."""

from __future__ import annotations

import logging

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from reviewpulse.core.config import settings

_logger = logging.getLogger(__name__)

_metrics_enabled = False
_meter = None
_provider: MeterProvider | None = None
_reconstruction_counter = None
_confidence_hist = None
_cache_hit_counter = None
_cache_miss_counter = None


def configure_metrics() -> None:
    """Initialise the metrics provider if enabled via settings."""

    global _metrics_enabled, _meter, _provider, _reconstruction_counter, _confidence_hist
    global _cache_hit_counter, _cache_miss_counter

    if not settings.otel_enabled:
        return
    if _metrics_enabled:
        return

    exporter_name = settings.otel_exporter.lower().strip()
    metric_readers = []

    if exporter_name == "console":
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))
    elif exporter_name == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "OTLP exporter selected but opentelemetry-exporter-otlp is not installed."
            ) from exc
        metric_readers.append(PeriodicExportingMetricReader(OTLPMetricExporter()))
    else:
        _logger.warning("Unsupported OTEL exporter '%s'; defaulting to console", exporter_name)
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    _provider = MeterProvider(metric_readers=metric_readers, resource=Resource.create({"service.name": "reviewpulse"}))
    metrics.set_meter_provider(_provider)
    _meter = metrics.get_meter("reviewpulse")
    _reconstruction_counter = _meter.create_counter(
        name="reviewpulse.timeline.reconstructions",
        unit="1",
        description="Timeline reconstructions performed",
    )
    _confidence_hist = _meter.create_histogram(
        name="reviewpulse.timeline.confidence",
        unit="1",
        description="Validator confidence score per reconstructed timeline",
    )
    _cache_hit_counter = _meter.create_counter(
        name="reviewpulse.cache.hits",
        unit="1",
        description="Derived-artifact cache lookups served from cache",
    )
    _cache_miss_counter = _meter.create_counter(
        name="reviewpulse.cache.misses",
        unit="1",
        description="Derived-artifact cache lookups that required recomputation",
    )
    _metrics_enabled = True


def record_timeline_reconstruction(confidence: float) -> None:
    if _metrics_enabled and _reconstruction_counter is not None and _confidence_hist is not None:
        _reconstruction_counter.add(1)
        _confidence_hist.record(min(max(confidence, 0.0), 1.0))


def record_cache_lookup(artifact: str, hit: bool) -> None:
    if not _metrics_enabled:
        return
    counter = _cache_hit_counter if hit else _cache_miss_counter
    if counter is not None:
        counter.add(1, {"artifact": artifact.split(":", 1)[0]})


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
