"""Structured test telemetry: log events and OpenTelemetry spans."""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import baggage
from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from e2e_runner.models.events import TestEvent, TestEventType
from e2e_runner.models.result import RunMode, RunSummary, TestCaseResult

log = logging.getLogger(__name__)

SERVICE_NAME = "end2end-tests-runner"
SERVICE_VERSION = "1.0.0"

EVENT_SYMBOLS: Mapping[TestEventType, str] = {
    TestEventType.STARTED: "🚀",
    TestEventType.COMPLETED: "✅",
    TestEventType.FAILED: "❌",
    TestEventType.SKIPPED: "⏭️",
}


def configure_tracing(
    otlp_endpoint: str | None = None,
    service_name: str = SERVICE_NAME,
    instance_id: str | None = None,
) -> TracerProvider:
    """Install the global tracer provider.

    Spans are exported over OTLP/HTTP when ``otlp_endpoint`` is given and
    dropped otherwise.
    """
    attributes: dict[str, str] = {
        "service.name": service_name,
        "service.version": SERVICE_VERSION,
    }
    if instance_id:
        attributes["service.instance.id"] = instance_id

    provider = TracerProvider(resource=Resource.create(attributes))
    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )

        endpoint = f"{otlp_endpoint.rstrip('/')}/v1/traces"
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint)))
        log.info("Exporting traces to %s", endpoint)

    trace.set_tracer_provider(provider)
    return provider


@dataclass(frozen=True, kw_only=True)
class TelemetryReporter:
    """Emits test events, run summaries and tracing spans."""

    tracer: trace.Tracer = field(
        default_factory=lambda: trace.get_tracer(SERVICE_NAME, SERVICE_VERSION)
    )
    logger: logging.Logger = field(default=log, repr=False)

    def report_test_event(self, event: TestEvent) -> None:
        """Log a single test lifecycle event."""
        symbol = EVENT_SYMBOLS[event.event_type]
        match event.event_type:
            case TestEventType.STARTED:
                self.logger.info(
                    "%s TEST STARTED: %s at %s",
                    symbol,
                    event.test_name,
                    f"{event.timestamp:%H:%M:%S}",
                )
            case TestEventType.COMPLETED:
                self.logger.info(
                    "%s TEST COMPLETED: %s in %.2fs",
                    symbol,
                    event.test_name,
                    event.duration or 0.0,
                )
            case TestEventType.FAILED:
                self.logger.error(
                    "%s TEST FAILED: %s - %s",
                    symbol,
                    event.test_name,
                    event.error_message,
                )
                if event.stack_trace:
                    self.logger.debug("%s", event.stack_trace)
            case TestEventType.SKIPPED:
                self.logger.info(
                    "%s TEST SKIPPED: %s - %s",
                    symbol,
                    event.test_name,
                    event.error_message,
                )

        if event.next_scheduled_run is not None:
            self.logger.info(
                "⏰ Next run scheduled for: %s", f"{event.next_scheduled_run:%H:%M:%S}"
            )

    def report_run_summary(self, summary: RunSummary) -> None:
        """Log the summary of a completed run."""
        next_run = (
            f"{summary.next_scheduled_run:%H:%M:%S}"
            if summary.next_scheduled_run
            else "none"
        )
        self.logger.info(
            "📈 TEST RUN SUMMARY (%s, %s mode%s):\n"
            "├── Duration: %.2fs\n"
            "├── Total Tests: %d\n"
            "├── Passed: %d ✅\n"
            "├── Failed: %d ❌\n"
            "├── Skipped: %d ⏭️\n"
            "└── Next Run: %s ⏰",
            summary.run_id,
            summary.mode,
            ", cancelled" if summary.cancelled else "",
            summary.duration,
            summary.total,
            summary.passed,
            summary.failed,
            summary.skipped,
            next_run,
        )

        if summary.success:
            self.logger.info(
                "✅ Test run passed: %d/%d tests in %.1fs",
                summary.passed,
                summary.total,
                summary.duration,
            )
            return

        self.logger.error(
            "❌ Test run failed: %d/%d passed, %d failed in %.1fs",
            summary.passed,
            summary.total,
            summary.failed,
            summary.duration,
        )
        for name in summary.failed_tests:
            self.logger.error("   ❌ %s", name)

    @contextmanager
    def start_run_span(
        self, run_id: str, mode: RunMode, **attributes: Any
    ) -> Iterator[Span]:
        """Start the span covering a whole run and make it current."""
        with self.tracer.start_as_current_span(
            f"E2E Test Suite ({mode.capitalize()})",
            kind=SpanKind.INTERNAL,
            attributes={
                "test.type": "e2e",
                "test.framework": "markers",
                "test.run.id": run_id,
                "test.mode": mode,
                **attributes,
            },
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            yield span

    @contextmanager
    def start_test_span(
        self, test_name: str, fixture_name: str, method_name: str, run_id: str
    ) -> Iterator[Span]:
        """Start a test span as a child of the current run span."""
        with self.tracer.start_as_current_span(
            f"Test: {test_name}",
            kind=SpanKind.INTERNAL,
            attributes={
                "test.name": test_name,
                "test.class": fixture_name,
                "test.method": method_name,
                "test.type": "e2e",
                "test.run.id": run_id,
            },
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            yield span

    @contextmanager
    def start_ping_span(self, target: str, path: str, run_id: str) -> Iterator[Span]:
        """Start a health ping span as the root of a new trace.

        The runner name and ping id travel to the service as baggage.
        """
        with self.tracer.start_as_current_span(
            f"E2E Health Check: {target}",
            context=otel_context.Context(),
            kind=SpanKind.CLIENT,
            attributes={
                "test.suite": "e2e-health-check",
                "test.name": f"ping_{target}",
                "test.target": target,
                "test.endpoint": path,
                "test.type": "health-check",
                "test.run.id": run_id,
            },
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            ctx = baggage.set_baggage("test.runner", SERVICE_NAME)
            ctx = baggage.set_baggage("test.run.id", run_id, context=ctx)
            token = otel_context.attach(ctx)
            try:
                yield span
            finally:
                otel_context.detach(token)


def record_test_result(
    span: Span, result: TestCaseResult, error: BaseException | None = None
) -> None:
    """Set outcome attributes and status on a test span."""
    span.set_attribute("test.duration_ms", result.duration * 1000)
    if result.success:
        span.set_attribute("test.result", "passed")
        span.set_status(Status(StatusCode.OK))
        span.add_event("test_passed")
        return

    if result.skipped:
        span.set_attribute("test.result", "skipped")
        span.add_event("test_skipped")
        return

    span.set_attribute("test.result", "failed")
    span.set_attribute("test.error.message", result.error_message or "")
    span.set_attribute("test.error.type", result.error_type or "")
    span.set_status(Status(StatusCode.ERROR, result.error_message))
    if error is not None:
        span.record_exception(error)
    span.add_event("test_failed")


def record_run_summary(span: Span, summary: RunSummary) -> None:
    """Set aggregate attributes and status on a run span."""
    span.set_attribute("test.total", summary.total)
    span.set_attribute("test.passed", summary.passed)
    span.set_attribute("test.failed", summary.failed)
    span.set_attribute("test.skipped", summary.skipped)
    span.set_attribute("test.duration_ms", summary.duration * 1000)
    span.set_attribute("test.success", summary.success)
    if summary.success:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, f"{summary.failed} tests failed"))
