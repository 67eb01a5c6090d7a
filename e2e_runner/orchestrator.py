"""Run orchestrator executing a full test catalog in batch or individual mode."""

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import ModuleType

from opentelemetry.trace import Span

from e2e_runner.cancellation import wait_for_stop
from e2e_runner.discovery import DiscoveryError, TestCase, discover_test_cases
from e2e_runner.executor import TestCaseExecutor
from e2e_runner.models.options import SchedulerOptions
from e2e_runner.models.result import RunMode, RunSummary, TestCaseResult
from e2e_runner.suites.loading import load_suite_modules
from e2e_runner.telemetry import TelemetryReporter, record_run_summary

log = logging.getLogger(__name__)

type ModuleLoader = Callable[[], Sequence[ModuleType]]


@dataclass(frozen=True, kw_only=True)
class RunOrchestrator:
    """Discovers and executes the whole test catalog once per call."""

    executor: TestCaseExecutor
    telemetry: TelemetryReporter
    options: SchedulerOptions
    load_modules: ModuleLoader = field(default=load_suite_modules)

    async def run(self, stop: asyncio.Event, *, final_run: bool = False) -> RunSummary:
        """Run the catalog and return its summary.

        Args:
            stop: Shared stop signal, checked before every case and wait
            final_run: Whether no further run will be scheduled after this one

        Returns:
            The run summary, partial if the stop signal fired mid-run

        """
        mode: RunMode = "individual" if self.options.run_individually else "batch"
        run_id = uuid.uuid4().hex
        start_time = datetime.now(timezone.utc)
        next_run = start_time + timedelta(seconds=self.options.interval)
        results: list[TestCaseResult] = []

        attributes: dict[str, float] = {}
        if mode == "individual":
            attributes["test.cadence_seconds"] = self.options.individual_test_cadence

        with self.telemetry.start_run_span(run_id, mode, **attributes) as span:
            log.info(
                "🧪 Starting E2E test run (%s mode) %s at %s",
                mode,
                run_id,
                f"{start_time:%H:%M:%S}",
            )

            cancelled = False
            if self.options.initial_delay > 0:
                log.info(
                    "⏳ Waiting %.1fs before starting test run...",
                    self.options.initial_delay,
                )
                cancelled = await wait_for_stop(stop, self.options.initial_delay)

            if not cancelled:
                cases = self._discover(span)
                if mode == "individual":
                    cancelled = await self._run_individually(
                        cases, run_id, stop, next_run, results
                    )
                else:
                    cancelled = await self._run_batch(
                        cases, run_id, stop, next_run, results
                    )

            end_time = datetime.now(timezone.utc)
            summary = RunSummary.from_results(
                results,
                run_id=run_id,
                mode=mode,
                start_time=start_time,
                end_time=end_time,
                next_scheduled_run=(
                    None
                    if final_run or cancelled
                    else end_time + timedelta(seconds=self.options.interval)
                ),
                cancelled=cancelled,
            )
            record_run_summary(span, summary)

        if cancelled:
            log.info("🛑 Test run %s cancelled", run_id)
        self.telemetry.report_run_summary(summary)
        return summary

    def _discover(self, span: Span) -> list[TestCase]:
        """Load suites and build a fresh catalog, empty if loading fails."""
        try:
            modules = self.load_modules()
        except DiscoveryError as e:
            log.error("❌ Test discovery failed: %s", e)
            span.record_exception(e)
            span.set_attribute("test.discovery.error", str(e))
            return []

        log.info("📦 Loading tests from %d suite module(s)", len(modules))
        cases = discover_test_cases(modules, self.options.test_filters)
        log.info("🔍 Discovered %d test cases", len(cases))
        return cases

    async def _run_batch(
        self,
        cases: Sequence[TestCase],
        run_id: str,
        stop: asyncio.Event,
        next_run: datetime,
        results: list[TestCaseResult],
    ) -> bool:
        """Execute every case, sequentially unless concurrency is configured."""
        if self.options.batch_concurrency == 1:
            for case in cases:
                if stop.is_set():
                    return True
                results.append(
                    await self.executor.execute(
                        case, run_id=run_id, stop=stop, next_scheduled_run=next_run
                    )
                )
            return stop.is_set()

        semaphore = asyncio.Semaphore(self.options.batch_concurrency)

        async def execute(case: TestCase) -> None:
            async with semaphore:
                if stop.is_set():
                    return
                results.append(
                    await self.executor.execute(
                        case, run_id=run_id, stop=stop, next_scheduled_run=next_run
                    )
                )

        await asyncio.gather(*(execute(case) for case in cases))
        return stop.is_set()

    async def _run_individually(
        self,
        cases: Sequence[TestCase],
        run_id: str,
        stop: asyncio.Event,
        next_run: datetime,
        results: list[TestCaseResult],
    ) -> bool:
        """Execute one case at a time, pausing for the cadence between cases."""
        cadence = self.options.individual_test_cadence
        total = len(cases)

        for index, case in enumerate(cases, start=1):
            if stop.is_set():
                return True

            log.info("📋 Running test %d/%d: %s", index, total, case.display_name)
            results.append(
                await self.executor.execute(
                    case, run_id=run_id, stop=stop, next_scheduled_run=next_run
                )
            )

            if index == total or stop.is_set():
                continue

            next_test_at = datetime.now(timezone.utc) + timedelta(seconds=cadence)
            log.info(
                "⏰ Next test in %.1fs. Next test at: %s",
                cadence,
                f"{next_test_at:%H:%M:%S}",
            )
            if await wait_for_stop(stop, cadence):
                return True

        return stop.is_set()
