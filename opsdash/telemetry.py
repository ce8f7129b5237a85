"""Tracing for the metrics service.

Snapshot builds open a ``metrics.snapshot`` span through ``get_tracer``.  With
``OTEL_ENABLED`` unset the OpenTelemetry API hands out no-op spans, so nothing
here is required at runtime; the SDK, exporter and instrumentations come from
the ``otel`` extra.
"""

import logging
import os
from collections.abc import Callable

from opentelemetry import trace

logger = logging.getLogger(__name__)

SERVICE_NAME = "opsdash"


def get_tracer(name: str | None = None) -> trace.Tracer:
    return trace.get_tracer(name or SERVICE_NAME)


def otel_enabled() -> bool:
    return os.getenv("OTEL_ENABLED", "false").lower() in {"1", "true", "yes", "on"}


def _instrument(target: str, apply: Callable[[], None]) -> bool:
    try:
        apply()
    except Exception:
        logger.warning("otel_instrumentation_unavailable target=%s", target, exc_info=True)
        return False
    logger.info("otel_instrumented target=%s", target)
    return True


def _instrument_fastapi(app) -> None:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

    FastAPIInstrumentor.instrument_app(app)


def _instrument_sqlalchemy() -> None:
    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

    from opsdash.db import get_engine

    SQLAlchemyInstrumentor().instrument(engine=get_engine())


def _instrument_httpx() -> None:
    # quality feed client
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    HTTPXClientInstrumentor().instrument()


def setup_otel(app) -> list[str]:
    """Install an OTLP tracer provider and instrument the service's I/O.

    Covers the HTTP routes, the record queries and the quality feed.  Returns
    the targets that were instrumented; empty when tracing is disabled or the
    SDK is missing.
    """
    if not otel_enabled():
        return []

    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        logger.exception("otel_sdk_unavailable")
        return []

    service_name = os.getenv("OTEL_SERVICE_NAME", SERVICE_NAME)
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    exporter = OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces") if endpoint else OTLPSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    targets = {
        "fastapi": lambda: _instrument_fastapi(app),
        "sqlalchemy": _instrument_sqlalchemy,
        "httpx": _instrument_httpx,
    }
    instrumented = [target for target, apply in targets.items() if _instrument(target, apply)]
    logger.info("otel_enabled service=%s targets=%s", service_name, ",".join(instrumented))
    return instrumented
