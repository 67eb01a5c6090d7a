"""Shared fixtures for unit tests."""

import asyncio

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
    InMemorySpanExporter,
)
from opentelemetry.trace import Tracer

from e2e_runner.telemetry import TelemetryReporter


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """Collect finished spans in memory."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    """Create a tracer provider exporting to the in-memory exporter."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest.fixture
def tracer(tracer_provider: TracerProvider) -> Tracer:
    """Create a tracer from the test provider."""
    return tracer_provider.get_tracer("tests")


@pytest.fixture
def telemetry(tracer: Tracer) -> TelemetryReporter:
    """Create a telemetry reporter using the test tracer."""
    return TelemetryReporter(tracer=tracer)


@pytest.fixture
def stop() -> asyncio.Event:
    """Create an unset stop signal."""
    return asyncio.Event()
