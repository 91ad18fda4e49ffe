from __future__ import annotations

import logging

from fastapi import FastAPI
from opentelemetry import trace as trace_api
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor

from smart_lunch.config import Settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "smart-lunch-api"


def setup_telemetry(app: FastAPI, settings: Settings):
    """Export request spans over OTLP/HTTP; optionally start a local Phoenix session."""
    session = None
    if settings.phoenix_launch:
        import phoenix as px

        session = px.launch_app()
        logger.info("Phoenix is running on: %s", session.url)

    resource = Resource(attributes={"service.name": SERVICE_NAME})
    trace_provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=settings.telemetry_endpoint)
    trace_provider.add_span_processor(SimpleSpanProcessor(exporter))
    trace_api.set_tracer_provider(trace_provider)

    FastAPIInstrumentor().instrument_app(app)
    logger.info("Tracing enabled, exporting to %s", settings.telemetry_endpoint)
    return session
