"""Schedule controller driving recurring test runs alongside health pings."""

import asyncio
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import StrEnum

from opentelemetry.trace import Status, StatusCode

from e2e_runner.cancellation import wait_for_stop
from e2e_runner.health.gate import HealthGate, HealthGateTimeoutError
from e2e_runner.health.monitor import HealthMonitor
from e2e_runner.models.options import SchedulerOptions
from e2e_runner.models.result import RunSummary
from e2e_runner.orchestrator import RunOrchestrator
from e2e_runner.telemetry import TelemetryReporter

log = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    """Lifecycle states of the schedule controller."""

    IDLE = "idle"
    WAITING_FOR_HEALTH = "waiting_for_health"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    STOPPED = "stopped"
    CANCELLED = "cancelled"


@dataclass(frozen=True, kw_only=True)
class ControllerReport:
    """What the controller did before its loop exited."""

    state: SchedulerState
    runs: int
    summaries: Sequence[RunSummary] = ()


@dataclass(frozen=True, kw_only=True)
class _CompletedRun:
    summary: RunSummary
    completed_at: float


@dataclass(kw_only=True)
class ScheduleController:
    """Owns the run counters and the single control loop.

    Every tick fires the health monitor's pings, collects a finished run and
    starts the next one when it is due. Runs execute as a separate task so
    pinging never waits for a run to finish.
    """

    orchestrator: RunOrchestrator
    gate: HealthGate
    monitor: HealthMonitor
    options: SchedulerOptions
    telemetry: TelemetryReporter
    tick_interval: float = 5

    state: SchedulerState = field(default=SchedulerState.IDLE, init=False)
    runs_started: int = field(default=0, init=False)
    runs_completed: int = field(default=0, init=False)
    last_run_completed_at: datetime | None = field(default=None, init=False)
    next_run_at: datetime | None = field(default=None, init=False)
    _next_due: float | None = field(default=None, init=False, repr=False)
    _next_ping: float = field(default=0.0, init=False, repr=False)
    _summaries: list[RunSummary] = field(default_factory=list, init=False, repr=False)

    async def run(self, stop: asyncio.Event) -> ControllerReport:
        """Gate on service health, then schedule runs until stopped.

        Args:
            stop: Shared stop signal ending the loop

        Returns:
            Final state, number of completed runs and their summaries

        """
        self.state = SchedulerState.WAITING_FOR_HEALTH
        if not await self._wait_for_health(stop):
            return self._report()

        loop = asyncio.get_running_loop()
        self._schedule_first_run(loop.time())

        run_task: asyncio.Task[_CompletedRun] | None = None
        while not stop.is_set():
            if loop.time() >= self._next_ping:
                self.monitor.ping_all()
                self._next_ping = loop.time() + self.tick_interval

            if run_task is not None and run_task.done():
                self._complete_run(run_task.result())
                run_task = None

            if run_task is None and self._run_due(loop.time()):
                run_task = self._start_run(stop)

            await wait_for_stop(stop, self._sleep_for(loop.time(), run_task))

        if run_task is not None:
            log.info("⏳ Waiting for the in-flight test run to finish...")
            self._complete_run(await run_task)

        await self.monitor.aclose()
        self.state = SchedulerState.CANCELLED
        log.info("🛑 Scheduler stopped after %d run(s)", self.runs_completed)
        return self._report()

    async def _wait_for_health(self, stop: asyncio.Event) -> bool:
        """Run the health gate, moving to a terminal state if it does not pass."""
        with self.telemetry.tracer.start_as_current_span(
            "E2E Health Gate",
            attributes={
                "test.type": "health-gate",
                "health.timeout_s": self.gate.timeout,
            },
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            try:
                healthy = await self.gate.wait(stop)
            except HealthGateTimeoutError as e:
                log.error("❌ Health gate failed, no test runs will start: %s", e)
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                self.state = SchedulerState.STOPPED
                return False

            if not healthy:
                log.info("🛑 Stopped while waiting for services to be healthy")
                self.state = SchedulerState.CANCELLED
                return False

            span.set_status(Status(StatusCode.OK))
            return True

    def _schedule_first_run(self, now: float) -> None:
        if self.options.budget_exhausted(0):
            log.info("🏁 No test runs configured, only health pings will run")
            self.state = SchedulerState.STOPPED
            return

        delay = 0.0 if self.options.run_on_startup else self.options.interval
        self._set_next_run(
            now + delay, datetime.now(timezone.utc) + timedelta(seconds=delay)
        )
        if self.options.run_on_startup:
            log.info("🚀 Running tests on startup")
        else:
            log.info(
                "⏰ First test run scheduled for %s",
                f"{self.next_run_at:%H:%M:%S}",
            )
        self.state = SchedulerState.SCHEDULED

    def _set_next_run(self, due: float, at: datetime) -> None:
        self._next_due = due
        self.next_run_at = at

    def _run_due(self, now: float) -> bool:
        return (
            self.state is SchedulerState.SCHEDULED
            and self._next_due is not None
            and now >= self._next_due
            and not self.options.budget_exhausted(self.runs_started)
        )

    def _start_run(self, stop: asyncio.Event) -> asyncio.Task[_CompletedRun]:
        self.runs_started += 1
        final_run = self.options.budget_exhausted(self.runs_started)
        self.state = SchedulerState.RUNNING
        log.info(
            "🧪 Starting scheduled test run #%d%s",
            self.runs_started,
            f" of {self.options.max_runs}" if self.options.max_runs else "",
        )
        return asyncio.create_task(
            self._execute_run(stop, final_run, self.runs_started),
            name=f"test-run-{self.runs_started}",
        )

    async def _execute_run(
        self, stop: asyncio.Event, final_run: bool, number: int
    ) -> _CompletedRun:
        """Run the catalog once; a crash becomes a failed, empty summary."""
        start_time = datetime.now(timezone.utc)
        try:
            summary = await self.orchestrator.run(stop, final_run=final_run)
        except Exception as e:
            log.error("❌ Test run #%d crashed: %s", number, e, exc_info=e)
            summary = self._crashed_summary(start_time)
        return _CompletedRun(
            summary=summary, completed_at=asyncio.get_running_loop().time()
        )

    def _crashed_summary(self, start_time: datetime) -> RunSummary:
        return RunSummary(
            run_id=uuid.uuid4().hex,
            mode="individual" if self.options.run_individually else "batch",
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            total=0,
            passed=0,
            failed=0,
            skipped=0,
            failed_tests=(),
            success=False,
        )

    def _complete_run(self, completed: _CompletedRun) -> None:
        """Apply a finished run to the controller state."""
        self.runs_completed += 1
        self.last_run_completed_at = completed.summary.end_time
        self._summaries.append(completed.summary)
        if completed.summary.cancelled:
            return

        if self.options.budget_exhausted(self.runs_completed):
            self._next_due = None
            self.next_run_at = None
            self.state = SchedulerState.STOPPED
            log.info(
                "🏁 Reached maximum of %d test run(s), health pings continue",
                self.runs_completed,
            )
            return

        interval = self.options.interval
        self._set_next_run(
            completed.completed_at + interval,
            completed.summary.end_time + timedelta(seconds=interval),
        )
        self.state = SchedulerState.SCHEDULED
        log.info("⏰ Next test run scheduled for %s", f"{self.next_run_at:%H:%M:%S}")

    def _sleep_for(
        self, now: float, run_task: asyncio.Task[_CompletedRun] | None
    ) -> float:
        """Time until the next ping tick, shortened when a run falls due sooner."""
        wake = self._next_ping
        if run_task is None and self._next_due is not None:
            wake = min(wake, self._next_due)
        return max(0.0, wake - now)

    def _report(self) -> ControllerReport:
        return ControllerReport(
            state=self.state,
            runs=self.runs_completed,
            summaries=tuple(self._summaries),
        )
