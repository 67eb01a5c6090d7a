"""Always-on health pings, independent of the test run cadence."""

import asyncio
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from opentelemetry.trace import Span, Status, StatusCode

from e2e_runner.health.targets import (
    DEFAULT_PROBE_TIMEOUT,
    HealthCheckTarget,
    ProbeResult,
    probe,
)
from e2e_runner.telemetry import TelemetryReporter

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class HealthMonitor:
    """Fires one independent ping per target each time it is asked to.

    Pings never block the caller and never raise; a slow or failing target
    does not affect the others.
    """

    targets: Sequence[HealthCheckTarget]
    telemetry: TelemetryReporter
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    _pending: set[asyncio.Task[ProbeResult]] = field(
        default_factory=set, init=False, repr=False
    )

    @property
    def pending(self) -> int:
        """Number of pings still in flight."""
        return len(self._pending)

    def ping_all(self) -> list[asyncio.Task[ProbeResult]]:
        """Start a ping task per target and return without waiting."""
        tasks = []
        for target in self.targets:
            task = asyncio.create_task(
                self.ping(target), name=f"health-ping-{target.name}"
            )
            self._pending.add(task)
            task.add_done_callback(self._on_done)
            tasks.append(task)
        return tasks

    async def ping(self, target: HealthCheckTarget) -> ProbeResult:
        """Ping a single target inside its own root span."""
        with self.telemetry.start_ping_span(
            target.name, target.path, uuid.uuid4().hex
        ) as span:
            span.add_event("health_check_started")
            span.set_attribute("http.method", "GET")
            span.set_attribute("http.url", target.url)

            result = await probe(target, self.probe_timeout)
            span.set_attribute("test.duration_ms", result.duration * 1000)

            if result.status is not None:
                span.set_attribute("http.status_code", result.status)
                span.set_attribute("http.response.status_code", result.status)

            if result.ready:
                span.set_status(Status(StatusCode.OK))
                span.add_event("health_check_succeeded")
                log.info(
                    "[%s] %s health check OK (duration: %.2fms)",
                    _trace_id(span),
                    target.name,
                    result.duration * 1000,
                )
            elif result.error is not None:
                span.set_status(Status(StatusCode.ERROR, str(result.error)))
                span.record_exception(result.error)
                span.add_event(
                    "health_check_exception",
                    {
                        "exception.type": type(result.error).__name__,
                        "exception.message": str(result.error),
                    },
                )
                log.warning(
                    "[%s] %s health ping failed with exception: %r",
                    _trace_id(span),
                    target.name,
                    result.error,
                )
            else:
                span.set_status(
                    Status(
                        StatusCode.ERROR,
                        f"Health check failed with status {result.status}",
                    )
                )
                span.add_event(
                    "health_check_failed", {"status_code": result.status or 0}
                )
                log.warning(
                    "[%s] %s health check failed: %s",
                    _trace_id(span),
                    target.name,
                    result.status,
                )

        return result

    def _on_done(self, task: asyncio.Task[ProbeResult]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and (error := task.exception()) is not None:
            log.warning("Health ping %s crashed: %r", task.get_name(), error)

    async def aclose(self) -> None:
        """Cancel pings still in flight and wait for them to finish."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)


def _trace_id(span: Span) -> str:
    context = span.get_span_context()
    if not context.is_valid:
        return "no-trace"
    return f"{context.trace_id:032x}"
