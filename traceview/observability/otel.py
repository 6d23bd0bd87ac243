"""OpenTelemetry + Prometheus fallback wiring for traceview."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from traceview import config

logger = logging.getLogger("traceview.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_lines_counter: Any | None = None
_decode_failure_counter: Any | None = None
_load_counter: Any | None = None
_load_latency_hist: Any | None = None

_prom_enabled = False
_prom_lines_counter: Any | None = None
_prom_decode_failure_counter: Any | None = None
_prom_load_counter: Any | None = None
_prom_load_latency_hist: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _prom_labels(**values: str) -> dict[str, str]:
    return {key: (value or "").strip() or "unknown" for key, value in values.items()}


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _lines_counter, _decode_failure_counter, _load_counter, _load_latency_hist
    global _prom_enabled
    global _prom_lines_counter, _prom_decode_failure_counter, _prom_load_counter, _prom_load_latency_hist

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (TRACEVIEW_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "traceview"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "traceview",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("traceview")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("traceview")

    _lines_counter = meter.create_counter(
        "traceview_lines_decoded_total",
        unit="1",
        description="Classified log lines by result kind",
    )
    _decode_failure_counter = meter.create_counter(
        "traceview_decode_failures_total",
        unit="1",
        description="Literal decode attempts that fell back to another strategy",
    )
    _load_counter = meter.create_counter(
        "traceview_log_loads_total",
        unit="1",
        description="Log file loads by mode and result",
    )
    _load_latency_hist = meter.create_histogram(
        "traceview_log_load_latency_ms",
        unit="ms",
        description="Latency of reading and normalizing a log file",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = tracer
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_enabled = True
            _prom_lines_counter = Counter(
                "traceview_lines_decoded_total",
                "Classified log lines by result kind",
                ["kind"],
            )
            _prom_decode_failure_counter = Counter(
                "traceview_decode_failures_total",
                "Literal decode attempts that fell back to another strategy",
                ["parser"],
            )
            _prom_load_counter = Counter(
                "traceview_log_loads_total",
                "Log file loads by mode and result",
                ["mode", "result"],
            )
            _prom_load_latency_hist = Histogram(
                "traceview_log_load_latency_ms",
                "Latency of reading and normalizing a log file",
                ["mode", "result"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception as exc:  # noqa: BLE001
        logger.debug("FastAPI uninstrument failed: %s", exc)
    for provider in (_meter_provider, _trace_provider):
        try:
            if provider is not None:
                provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Telemetry provider shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_line_decoded(kind: str, count: int = 1) -> None:
    safe_count = max(0, int(count))
    if safe_count == 0:
        return
    if _enabled and _lines_counter is not None:
        _lines_counter.add(safe_count, {"kind": kind or "unknown"})
    if _prom_enabled and _prom_lines_counter is not None:
        _prom_lines_counter.labels(**_prom_labels(kind=kind)).inc(safe_count)


def record_decode_failure(parser: str) -> None:
    if _enabled and _decode_failure_counter is not None:
        _decode_failure_counter.add(1, {"parser": parser or "unknown"})
    if _prom_enabled and _prom_decode_failure_counter is not None:
        _prom_decode_failure_counter.labels(**_prom_labels(parser=parser)).inc()


def record_log_load(mode: str, result: str, duration_ms: float) -> None:
    labels = {"mode": mode or "unknown", "result": result or "unknown"}
    if _enabled and _load_counter is not None:
        _load_counter.add(1, labels)
    if _enabled and _load_latency_hist is not None:
        _load_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _prom_enabled and _prom_load_counter is not None:
        _prom_load_counter.labels(**_prom_labels(mode=mode, result=result)).inc()
    if _prom_enabled and _prom_load_latency_hist is not None:
        _prom_load_latency_hist.labels(**_prom_labels(mode=mode, result=result)).observe(
            max(0.0, float(duration_ms))
        )
